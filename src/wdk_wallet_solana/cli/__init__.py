"""Command line interface for the Solana wallet."""
