"""
GrammarGen Utilities

Metadata collection for reproducibility and system information.
"""

import platform
import subprocess
import sys
from importlib import metadata as importlib_metadata
from typing import Any, Dict

from . import __version__
from .builder import DEFAULT_ALPHABET
from .core import LITERAL_COST
from .verify import MAX_DEPTH, MAX_NODES

# Packages whose versions are reported in run metadata
KEY_PACKAGES = ["numpy", "pytest", "psutil"]


def _git_sha() -> str:
    try:
        return (
            subprocess.check_output(
                ["git", "rev-parse", "HEAD"], stderr=subprocess.DEVNULL
            )
            .decode()
            .strip()
        )
    except (OSError, subprocess.CalledProcessError):
        return "unknown"


def collect_run_metadata() -> Dict[str, Any]:
    """
    Collect metadata about the current run environment.

    This includes Python version, platform info, git commit, GrammarGen
    version and the versions of key installed packages.

    Returns:
        Dict containing all environment metadata
    """
    packages = {}
    for name in KEY_PACKAGES:
        try:
            packages[name] = importlib_metadata.version(name)
        except importlib_metadata.PackageNotFoundError:
            continue

    return {
        "python": sys.version.split()[0],
        "platform": platform.platform(),
        "git_sha": _git_sha(),
        "grammargen_version": __version__,
        "packages": packages,
        "grammar_limits": {
            "literal_cost": LITERAL_COST,
            "max_depth": MAX_DEPTH,
            "max_nodes": MAX_NODES,
            "alphabet_size": len(DEFAULT_ALPHABET),
        },
        "timestamp": None,  # Set by caller if needed
    }


def format_metadata_summary(metadata: Dict[str, Any]) -> str:
    """
    Render metadata as aligned ``name: value`` rows, one section per block:
    environment, installed packages, then the grammar limits in force.
    """
    sha = metadata.get("git_sha") or "unknown"
    sections = [
        ("Environment", [
            ("grammargen", metadata.get("grammargen_version", "unknown")),
            ("python", metadata.get("python", "unknown")),
            ("platform", metadata.get("platform", "unknown")),
            ("git", sha if sha == "unknown" else sha[:8]),
            ("recorded", metadata.get("timestamp")),
        ]),
        ("Packages", sorted(metadata.get("packages", {}).items())),
        ("Grammar limits", list(metadata.get("grammar_limits", {}).items())),
    ]

    lines = [f"GrammarGen v{metadata.get('grammargen_version', 'unknown')}"]
    for title, rows in sections:
        rows = [(name, value) for name, value in rows if value is not None]
        if not rows:
            continue
        width = max(len(name) for name, _ in rows)
        lines.append(f"{title}:")
        lines.extend(f"  {name.ljust(width)}  {value}" for name, value in rows)
    return "\n".join(lines)
