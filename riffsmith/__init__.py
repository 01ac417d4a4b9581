"""Riffsmith — prompt-driven generation sessions for live-coded music."""
