"""UI layer -- Rich dashboard."""

from .dashboard import (
    ProgressDisplay,
    console,
    create_histogram,
    print_all_results,
    print_guidance,
    print_header,
    print_result,
    print_services,
    quality_badge,
)

__all__ = [
    "ProgressDisplay",
    "console",
    "create_histogram",
    "print_all_results",
    "print_guidance",
    "print_header",
    "print_result",
    "print_services",
    "quality_badge",
]
