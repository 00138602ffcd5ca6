from .build_input import BuildInput, SubnetEntry, load_build_input
from .documents import load_document
from .stack_writer import StackWriter

__all__ = ["BuildInput", "StackWriter", "SubnetEntry", "load_build_input", "load_document"]
