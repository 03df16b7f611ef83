"""Top-level package for the CBC assessment toolkit.

Provides subpackages:
- cbc_toolkit.core – immutable data models, errors, schemas and serialization
- cbc_toolkit.grading – score normalization, weighting, grade bands,
  aggregation, ranking and batch mark entry
- cbc_toolkit.reports – report cards, broadsheets, distributions and rankings
- cbc_toolkit.cli – command-line entry point over JSON snapshots
"""

def _get_version() -> str:
    """Get version from pyproject.toml (dev) or importlib.metadata (installed)."""
    from pathlib import Path

    # In dev mode, read directly from pyproject.toml
    pyproject = Path(__file__).resolve().parent.parent.parent / "pyproject.toml"

    if pyproject.exists():
        try:
            content = pyproject.read_text(encoding="utf-8")
        except OSError:
            content = ""
        for line in content.splitlines():
            if line.strip().startswith("version"):
                # Parse: version = "0.4.0"
                return line.split("=")[1].strip().strip('"').strip("'")

    # Fallback to importlib.metadata for installed package
    from importlib.metadata import PackageNotFoundError, version as pkg_version
    try:
        return pkg_version("cbc-toolkit")
    except PackageNotFoundError:
        return "0.0.0"

__version__ = _get_version()
__all__: list[str] = ["__version__"]
