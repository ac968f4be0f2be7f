"""
Configuration constants for rendering, inference and the CLI
"""

# Layout constants (elm-format conventions)
INDENT_WIDTH = 4  # Spaces per nesting level
MAX_LINE_WIDTH = 80  # Containers longer than this break into the leading-comma layout
BLANK_LINES_BETWEEN_DECLARATIONS = 2
BLANK_LINES_AFTER_IMPORTS = 2

# Rendering fallbacks
PLACEHOLDER_TYPE_NAME = "unknown"  # Type variable used when no type is available
UPDATE_BASE_NAME = "record"  # let-bound name for record updates on a non-variable base (then record1, ...)

# Generated type variable names
TYPE_VARIABLE_ALPHABET = "abcdefghijklmnopqrstuvwxyz"

# Module constants
MODULE_SEPARATOR = "."
MODULE_FILE_EXTENSION = ".elm"
DEFAULT_MODULE_NAME = "Main"

# Elm's implicit imports: references into these modules never need an import line
DEFAULT_IMPORTS = frozenset({
    ("Basics",),
    ("List",),
    ("Maybe",),
    ("Result",),
    ("String",),
    ("Char",),
    ("Tuple",),
    ("Debug",),
    ("Platform",),
    ("Platform", "Cmd"),
    ("Platform", "Sub"),
})

# Types exposed unqualified by the implicit imports
DEFAULT_EXPOSED_TYPES = {
    ("Basics",): frozenset({"Int", "Float", "Bool", "Never", "Order"}),
    ("List",): frozenset({"List"}),
    ("Maybe",): frozenset({"Maybe"}),
    ("Result",): frozenset({"Result"}),
    ("String",): frozenset({"String"}),
    ("Char",): frozenset({"Char"}),
    ("Platform",): frozenset({"Program"}),
    ("Platform", "Cmd"): frozenset({"Cmd"}),
    ("Platform", "Sub"): frozenset({"Sub"}),
}

# Values exposed unqualified by the implicit imports (Basics exposes everything)
DEFAULT_EXPOSED_VALUES = {
    ("Maybe",): frozenset({"Just", "Nothing"}),
    ("Result",): frozenset({"Ok", "Err"}),
}
BASICS_MODULE = ("Basics",)

# Literal constants
STRING_QUOTE_CHAR = '"'
CHAR_QUOTE_CHAR = "'"
BOOLEAN_TRUE_LITERAL = "True"
BOOLEAN_FALSE_LITERAL = "False"

# File encoding constants
DEFAULT_FILE_ENCODING = "utf-8"

# Environment variables controlling diagnostics colour
COLOR_ENV_VAR = "ELMGEN_COLOR"
NO_COLOR_ENV_VAR = "NO_COLOR"

# Tree dumps
DUMP_TREES_ENV_VAR = "ELMGEN_DUMP_TREES"  # Directory receiving one S-expression dump per rendered module
TREE_DUMP_EXTENSION = ".sexpr"
