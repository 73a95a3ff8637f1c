"""
Rust toolchain tuning for faster local builds.
"""

import logging
import os
from pathlib import Path
from typing import Dict, List, Mapping, Optional

import psutil
import toml

from ..models.config import BuilderConfig

logger = logging.getLogger(__name__)

DEFAULT_CORES = 4


def detect_cpu_count() -> int:
    """Logical CPU count, falling back to a sane default."""
    cores = psutil.cpu_count(logical=True)
    return cores or DEFAULT_CORES


def build_command(release: bool) -> List[str]:
    command = ["cargo", "build"]
    if release:
        command.append("--release")
    return command


def prepare_build_environment(
    builder: BuilderConfig, base_env: Optional[Mapping[str, str]] = None
) -> Dict[str, str]:
    """
    Environment for the build tool.

    With toolchain tuning enabled, incremental compilation is switched on
    and (optionally) code is generated for the host CPU.
    """
    env = dict(os.environ if base_env is None else base_env)
    if not builder.tune_toolchain:
        return env

    env["CARGO_INCREMENTAL"] = "1"
    if builder.target_cpu_native:
        env["RUSTFLAGS"] = "-C target-cpu=native"
    logger.info("Using Rust compilation with incremental builds")
    return env


def cargo_config_data(jobs: int, cache_dir: Path, target_cpu_native: bool) -> Dict:
    """Contents of the generated .cargo/config.toml."""
    data: Dict = {
        "build": {"jobs": jobs},
        "profile": {
            "release": {
                "codegen-units": 1,
                "lto": "thin",
                "debug": False,
                "strip": True,
            }
        },
        "cache": {"dir": str(cache_dir / "sccache")},
    }
    if target_cpu_native:
        rustflags = ["-C", "target-cpu=native"]
        data["target"] = {
            "x86_64-apple-darwin": {"rustflags": rustflags},
            "aarch64-apple-darwin": {"rustflags": rustflags},
        }
    return data


def write_cargo_config(source_dir: Path, builder: BuilderConfig, jobs: Optional[int] = None) -> Path:
    """
    Write an optimized .cargo/config.toml into the working copy.

    Returns:
        Path of the written file
    """
    jobs = jobs or detect_cpu_count()
    config_path = source_dir / ".cargo" / "config.toml"
    config_path.parent.mkdir(parents=True, exist_ok=True)
    (builder.cargo_cache_dir / "sccache").mkdir(parents=True, exist_ok=True)

    data = cargo_config_data(jobs, builder.cargo_cache_dir, builder.target_cpu_native)
    with open(config_path, "w", encoding="utf-8") as f:
        toml.dump(data, f)

    logger.info(f"Optimized Rust build configuration created with {jobs} cores.")
    return config_path
