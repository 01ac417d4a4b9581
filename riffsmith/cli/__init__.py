"""Riffsmith command-line interface."""
