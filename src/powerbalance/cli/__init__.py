"""Command-line interface: pwb-solve."""
