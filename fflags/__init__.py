"""Getopt-style command-line flags, filled from arguments, environment variables and config files."""

__version__ = "0.1.0"

__all__ = ["flags", "traverse", "values", "flag_set", "parse", "structs"]