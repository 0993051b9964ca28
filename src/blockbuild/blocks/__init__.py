"""Block resolution, assembly and output writing."""

from .assembly import AssemblySettings, BlockAssembler, RecordEntryFn, merge_blocks
from .loader import load_block_source, split_identifier
from .models import BlockSource, CompiledBlock
from .writer import SavedBlock, save_block

__all__ = [
    "AssemblySettings",
    "BlockAssembler",
    "BlockSource",
    "CompiledBlock",
    "RecordEntryFn",
    "SavedBlock",
    "load_block_source",
    "merge_blocks",
    "save_block",
    "split_identifier",
]
