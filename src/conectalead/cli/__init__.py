"""Command-line interface for ConectaLead."""
