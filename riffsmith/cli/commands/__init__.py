"""Riffsmith CLI subcommands."""
