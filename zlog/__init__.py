"""Rule lines, format specs and outputs for category and level based logging."""

__version__ = "0.1.0"

__all__ = [
    "arraylist",
    "hashtable",
    "outputs",
    "profile",
    "rule",
    "spec",
    "thread",
    "util",
]