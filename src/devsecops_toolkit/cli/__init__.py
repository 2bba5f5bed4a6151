"""Command-line interface package for the toolkit."""

from .app import (
    build_parser,
    create_scan_service,
    main,
    prompt_yes_no,
    render_table,
    run,
)

__all__ = [
    "build_parser",
    "create_scan_service",
    "main",
    "prompt_yes_no",
    "render_table",
    "run",
]
