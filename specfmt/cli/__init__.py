"""Command line entry points for specfmt."""
