from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from gwstack.config import DEFAULT_SSL_POLICY, BuilderConfig, FeatureGate, load_builder_config
from gwstack.exceptions import ConfigurationLoadError
from gwstack.ir.models import ALL_ADDONS, LoadBalancerType, TargetType


class TestBuilderConfig:
    def test_defaults(self) -> None:
        config = BuilderConfig(cluster_name="c1", vpc_id="vpc-1")
        assert config.load_balancer_type is LoadBalancerType.APPLICATION
        assert config.is_application
        assert config.default_target_type is TargetType.INSTANCE
        assert config.default_ssl_policy == DEFAULT_SSL_POLICY
        assert config.enable_backend_sg is True
        assert config.supported_addons == ALL_ADDONS

    def test_feature_gates_default_on(self) -> None:
        config = BuilderConfig(cluster_name="c1", vpc_id="vpc-1")
        assert config.feature_enabled(FeatureGate.WEIGHTED_TARGET_GROUPS)
        assert config.feature_enabled(FeatureGate.NLB_SECURITY_GROUP)
        assert not config.feature_enabled("SomethingUnknown")

    def test_feature_gate_override(self) -> None:
        config = BuilderConfig(
            cluster_name="c1",
            vpc_id="vpc-1",
            feature_gates={FeatureGate.LISTENER_RULES_TAGGING: False},
        )
        assert not config.feature_enabled(FeatureGate.LISTENER_RULES_TAGGING)

    def test_frozen(self) -> None:
        config = BuilderConfig(cluster_name="c1", vpc_id="vpc-1")
        with pytest.raises(ValidationError):
            config.cluster_name = "other"

    def test_default_tags_must_not_be_external(self) -> None:
        with pytest.raises(ValidationError, match="overlap external managed tags"):
            BuilderConfig(
                cluster_name="c1",
                vpc_id="vpc-1",
                default_tags={"owner": "ops"},
                external_managed_tags=frozenset({"owner"}),
            )

    def test_cluster_name_required(self) -> None:
        with pytest.raises(ValidationError):
            BuilderConfig(cluster_name="", vpc_id="vpc-1")


class TestLoadBuilderConfig:
    def test_yaml_with_camel_case_keys(self, tmp_path: Path) -> None:
        path = tmp_path / "builder.yaml"
        path.write_text(
            "clusterName: prod\n"
            "vpcId: vpc-9\n"
            "loadBalancerType: network\n"
            "enableBackendSG: false\n"
            "featureGates:\n"
            "  NLBSecurityGroup: false\n",
            encoding="utf-8",
        )
        config = load_builder_config(path)
        assert config.cluster_name == "prod"
        assert config.load_balancer_type is LoadBalancerType.NETWORK
        assert config.enable_backend_sg is False
        assert not config.feature_enabled(FeatureGate.NLB_SECURITY_GROUP)

    def test_invalid_document(self, tmp_path: Path) -> None:
        path = tmp_path / "builder.json"
        path.write_text('{"clusterName": "prod"}', encoding="utf-8")
        with pytest.raises(ConfigurationLoadError, match="invalid BuilderConfig") as exc_info:
            load_builder_config(path)
        assert exc_info.value.path == str(path)

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigurationLoadError, match="file not found"):
            load_builder_config(tmp_path / "absent.yaml")
