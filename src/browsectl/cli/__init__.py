"""browsectl command-line interface."""
