"""Benchmark run configuration.

Handles:
- The immutable :class:`RunConfig` snapshot consumed by the runner.
- Validation of run settings before any benchmark executes.
- Loading suite profiles from YAML files.
- Merging CLI options over profile values into a :class:`SuiteConfig`.

The runner never reads environment variables or command-line tokens
itself; the CLI resolves those and hands over a finished ``RunConfig``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

log = logging.getLogger("stressbench")

DEFAULT_THRESHOLD = 0.05
DEFAULT_OUTPUT_DIR = Path("target/stress")


# ---------------------------------------------------------------------------
# RunConfig
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RunConfig:
    """Resolved execution settings for one runner."""

    runs: int = 1  # Measured runs; the median is reported
    warmup: int = 0  # Discarded runs before measuring
    filter: str | None = None  # Substring filter on benchmark names
    pattern: str | None = None  # Anchored glob; wins over ``filter``
    include_ignored: bool = False

    @property
    def total_runs(self) -> int:
        """Invocations per benchmark (warmup + measured)."""
        return self.warmup + self.runs


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


@dataclass
class ValidationError:
    """A single configuration validation error."""

    field: str
    message: str
    severity: str = "error"  # "error" or "warning"


def validate_config(config: RunConfig) -> list[ValidationError]:
    """Validate a run configuration.

    Returns a list of validation errors.  Empty list means valid.
    """
    errors: list[ValidationError] = []

    if isinstance(config.runs, bool) or not isinstance(config.runs, int) or config.runs < 1:
        errors.append(
            ValidationError(
                field="runs",
                message=f"Runs must be an integer of at least 1 (got {config.runs!r}).",
            )
        )

    if isinstance(config.warmup, bool) or not isinstance(config.warmup, int) or config.warmup < 0:
        errors.append(
            ValidationError(
                field="warmup",
                message=f"Warmup runs must be a non-negative integer (got {config.warmup!r}).",
            )
        )

    if config.pattern is not None and not config.pattern:
        errors.append(
            ValidationError(
                field="pattern",
                message="Workload pattern is empty and will match nothing.",
                severity="warning",
            )
        )

    if config.pattern is not None and config.filter is not None:
        errors.append(
            ValidationError(
                field="filter",
                message=(
                    f"Both a workload pattern ('{config.pattern}') and a name filter "
                    f"('{config.filter}') are set; the pattern takes precedence."
                ),
                severity="warning",
            )
        )

    return errors


def check_config(config: RunConfig) -> None:
    """Log warnings and raise on fatal configuration errors.

    Raises:
        ValueError: If any error-severity problem is found.
    """
    errors = validate_config(config)
    for w in (e for e in errors if e.severity == "warning"):
        log.warning("Config warning: %s: %s", w.field, w.message)
    fatal = [e for e in errors if e.severity == "error"]
    if fatal:
        messages = [f"  {e.field}: {e.message}" for e in fatal]
        raise ValueError("Invalid benchmark configuration:\n" + "\n".join(messages))


# ---------------------------------------------------------------------------
# SuiteConfig
# ---------------------------------------------------------------------------


@dataclass
class SuiteConfig:
    """Everything a driver needs to run, persist and compare a suite."""

    suite: str = "stress"
    runs: int = 1
    warmup: int = 0
    filter: str | None = None
    pattern: str | None = None
    include_ignored: bool = False

    output_dir: Path = field(default_factory=lambda: DEFAULT_OUTPUT_DIR)
    save: bool = True
    baseline: Path | None = None
    threshold: float = DEFAULT_THRESHOLD
    git_sha: str | None = None
    metadata: dict[str, str] = field(default_factory=dict)
    show_all_runs: bool = False

    @property
    def run_config(self) -> RunConfig:
        """Freeze the execution settings into a :class:`RunConfig`."""
        return RunConfig(
            runs=self.runs,
            warmup=self.warmup,
            filter=self.filter,
            pattern=self.pattern,
            include_ignored=self.include_ignored,
        )


# ---------------------------------------------------------------------------
# YAML profile loading
# ---------------------------------------------------------------------------


def load_profile(profile_path: Path) -> dict[str, Any]:
    """Load a suite profile from a YAML file.

    Profile format::

        suite: storage
        runs: 5
        warmup: 1
        workload: "write*"
        include_ignored: false
        output_dir: target/stress
        baseline: baselines/storage.json
        threshold: 0.05
        metadata:
          disk: nvme0n1

    Returns:
        The parsed YAML as a dict.

    Raises:
        FileNotFoundError: If the profile does not exist.
        ValueError: If the profile is not a YAML mapping.
    """
    if not profile_path.exists():
        raise FileNotFoundError(f"Profile not found: {profile_path}")

    data = yaml.safe_load(profile_path.read_text())
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Profile must be a YAML mapping, got {type(data).__name__}")
    return data


def _pick(cli: dict[str, Any], profile: dict[str, Any], key: str, default: Any) -> Any:
    """CLI value if given (not None), else profile value, else default."""
    if cli.get(key) is not None:
        return cli[key]
    if profile.get(key) is not None:
        return profile[key]
    return default


def config_from_profile(
    profile_data: dict[str, Any],
    *,
    cli_overrides: dict[str, Any] | None = None,
) -> SuiteConfig:
    """Build a SuiteConfig from a parsed profile and CLI overrides.

    CLI values take precedence whenever they are not None.  The profile
    key ``workload`` maps to :attr:`SuiteConfig.pattern`.

    Raises:
        ValueError: If a profile value has the wrong type.
    """
    cli = cli_overrides or {}
    profile = dict(profile_data)
    if "workload" in profile and "pattern" not in profile:
        profile["pattern"] = profile.pop("workload")

    metadata = profile.get("metadata") or {}
    if not isinstance(metadata, dict):
        raise ValueError("Profile 'metadata' must be a mapping of key -> value")

    try:
        runs = int(_pick(cli, profile, "runs", 1))
        warmup = int(_pick(cli, profile, "warmup", 0))
        threshold = float(_pick(cli, profile, "threshold", DEFAULT_THRESHOLD))
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Invalid numeric value in profile: {exc}") from exc

    config = SuiteConfig(
        suite=str(_pick(cli, profile, "suite", "stress")),
        runs=runs,
        warmup=warmup,
        filter=_pick(cli, profile, "filter", None),
        pattern=_pick(cli, profile, "pattern", None),
        include_ignored=bool(cli.get("include_ignored") or profile.get("include_ignored")),
        output_dir=Path(_pick(cli, profile, "output_dir", DEFAULT_OUTPUT_DIR)),
        threshold=threshold,
        git_sha=_pick(cli, profile, "git_sha", None),
        metadata={str(k): str(v) for k, v in metadata.items()},
        show_all_runs=bool(cli.get("show_all_runs") or profile.get("show_all_runs")),
    )

    baseline = _pick(cli, profile, "baseline", None)
    if baseline:
        config.baseline = Path(baseline)
    if cli.get("save") is False:
        config.save = False

    return config
