"""Parse module - snapshot text → ``AssignmentSet``."""

from bridgepool.parse.assignment import RECOGNIZED_KEYS, parse_assignment
from bridgepool.parse.models import AssignmentDescriptor, AssignmentSet
from bridgepool.parse.parser import ParserState, parse_file, parse_files, parse_header_line

__all__ = [
    "RECOGNIZED_KEYS",
    "parse_assignment",
    "AssignmentDescriptor",
    "AssignmentSet",
    "ParserState",
    "parse_file",
    "parse_files",
    "parse_header_line",
]
