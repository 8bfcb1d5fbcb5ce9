"""Command-line interface for notechat."""
