"""
Command-line interface for building Gateway load balancer stacks.

Reads a Gateway input document, builds its Stack with static collaborators
and writes the Stack as YAML.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import NoReturn

from gwstack.builders import (
    DefaultAddonBuilder,
    DefaultSecurityGroupResolver,
    DefaultSubnetResolver,
    DefaultTagHelper,
    StackBuilder,
)
from gwstack.collaborators import (
    StaticBackendSecurityGroupProvider,
    StaticCertificateDiscovery,
    StaticSecretResolver,
    StaticSecurityGroupLookup,
    StaticSubnetLookup,
    StaticTrustStoreResolver,
)
from gwstack.config import BuilderConfig, load_builder_config
from gwstack.core.context import BuildContext
from gwstack.exceptions import (
    BuildCancelledError,
    ConfigurationLoadError,
    DeletionProtectedError,
    StackBuildError,
)
from gwstack.io import BuildInput, StackWriter, load_build_input

EXIT_OK = 0
EXIT_INPUT_ERROR = 1
EXIT_BUILD_ERROR = 2
EXIT_DELETION_PROTECTED = 3
EXIT_CANCELLED = 4
EXIT_FILE_ERROR = 8
EXIT_UNEXPECTED = 9


def configure_logging(debug: bool = False, verbose: bool = False) -> None:
    """Configure application logging.

    Args:
        debug: Enable debug-level logging if True.
        verbose: Enable INFO logs from every builder if True.
    """
    if debug:
        level = logging.DEBUG
        format_str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    elif verbose:
        level = logging.INFO
        format_str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    else:
        level = logging.INFO
        format_str = "%(levelname)s: %(message)s"

    # Logs go to stderr: stdout may carry the Stack document.
    logging.basicConfig(level=level, format=format_str, stream=sys.stderr, force=True)

    if not verbose and not debug:
        logging.getLogger("gwstack").setLevel(logging.WARNING)
        logging.getLogger(__name__).setLevel(logging.INFO)


def create_stack_builder(config: BuilderConfig, build_input: BuildInput) -> StackBuilder:
    """Wire a StackBuilder to static collaborators fed from the input document."""
    tag_helper = DefaultTagHelper(config.external_managed_tags, config.default_tags)
    subnet_resolver = DefaultSubnetResolver(
        config.load_balancer_type,
        StaticSubnetLookup(s.to_subnet_info() for s in build_input.subnets),
    )
    security_group_resolver = DefaultSecurityGroupResolver(
        config,
        tag_helper,
        StaticSecurityGroupLookup(build_input.security_groups),
        StaticBackendSecurityGroupProvider(build_input.backend_security_group),
    )
    return StackBuilder(
        config,
        subnet_resolver,
        security_group_resolver,
        DefaultAddonBuilder(config.supported_addons),
        certificate_discovery=StaticCertificateDiscovery(
            build_input.certificates,
            issuers=build_input.certificate_issuers,
            allowed_ca_arns=config.allowed_ca_arns,
        ),
        tag_helper=tag_helper,
        trust_store_resolver=StaticTrustStoreResolver(build_input.trust_stores),
    )


def run_build(
    input_file: Path,
    output_file: Path | None = None,
    config_file: Path | None = None,
) -> int:
    """Build the Stack described by ``input_file`` and write it out.

    Returns:
        Process exit code.
    """
    logger = logging.getLogger(__name__)

    try:
        build_input = load_build_input(input_file)
        if config_file is not None:
            config = load_builder_config(config_file)
        else:
            config = BuilderConfig(cluster_name="default", vpc_id="vpc-default")
            logger.debug("No builder config given; using defaults")

        builder = create_stack_builder(config, build_input)
        gateway = build_input.gateway
        result = builder.build(
            gateway,
            build_input.load_balancer_configuration,
            build_input.routes_by_port,
            current_addon_state=build_input.previous_addons,
            secret_resolver=StaticSecretResolver(build_input.secrets),
            context=BuildContext(label=gateway.namespaced_name),
        )

        StackWriter().write(
            result.stack,
            output_file,
            addons=[m.model_dump(mode="json") for m in result.addon_metadata],
            lifecycle=result.lifecycle.value,
            backendSecurityGroupAllocated=result.backend_security_group_allocated,
            referencedSecrets=sorted(result.referenced_secrets) or None,
        )
        if output_file is not None:
            logger.info("Stack for %s saved to: %s", gateway.namespaced_name, output_file)
        return EXIT_OK

    except ConfigurationLoadError as e:
        logger.error(f"Input error: {e}")
        return EXIT_INPUT_ERROR
    except DeletionProtectedError as e:
        logger.error(str(e))
        return EXIT_DELETION_PROTECTED
    except BuildCancelledError as e:
        logger.error(f"Build cancelled: {e}")
        return EXIT_CANCELLED
    except StackBuildError as e:
        logger.error(f"Build failed: {e}")
        return EXIT_BUILD_ERROR
    except OSError as e:
        logger.error(f"File system error: {e}")
        return EXIT_FILE_ERROR
    except Exception as e:
        logger.error(f"Unexpected error: {e}")
        logger.debug("Full traceback:", exc_info=True)
        return EXIT_UNEXPECTED


def parse_arguments(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="gwstack",
        description="Build load balancer resource stacks from Gateway API objects",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Print the stack of a gateway
  gwstack build examples/gateway.yaml

  # Write it to a file using a builder configuration
  gwstack build examples/gateway.yaml -o out/stack.yaml --config builder.yaml
        """,
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    build = subparsers.add_parser("build", help="Build the Stack of one Gateway")
    build.add_argument("input_file", type=Path, help="Gateway input document (YAML/JSON)")
    build.add_argument(
        "-o", "--output", dest="output_file", type=Path, help="Output file (default: stdout)"
    )
    build.add_argument(
        "--config", dest="config_file", type=Path, help="Builder configuration (YAML/JSON)"
    )
    verbosity = build.add_mutually_exclusive_group()
    verbosity.add_argument(
        "--debug", action="store_true", help="Enable debug logging for detailed output"
    )
    verbosity.add_argument(
        "-v", "--verbose", action="store_true", help="Enable INFO logging from builders"
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> NoReturn:
    args = parse_arguments(argv)
    configure_logging(args.debug, args.verbose)
    sys.exit(run_build(args.input_file, args.output_file, args.config_file))


if __name__ == "__main__":
    main()
