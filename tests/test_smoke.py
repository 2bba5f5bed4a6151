"""Minimal smoke tests for the toolkit package."""


def test_package_importable() -> None:
    """Ensure the top-level package and console entry points import cleanly."""
    import devsecops_toolkit
    from devsecops_toolkit.cli import github_reporting, run

    assert devsecops_toolkit.__version__
    assert callable(run)
    assert callable(github_reporting.run)
