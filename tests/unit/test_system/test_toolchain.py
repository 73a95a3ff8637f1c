"""
Unit tests for Rust toolchain tuning.
"""

from dataclasses import replace
from unittest.mock import patch

import pytest
import toml

from edgebuild.system import build_command, detect_cpu_count, prepare_build_environment, write_cargo_config


@pytest.mark.unit
class TestToolchain:

    def test_build_command_profiles(self):
        assert build_command(True) == ["cargo", "build", "--release"]
        assert build_command(False) == ["cargo", "build"]

    def test_detect_cpu_count_fallback(self):
        with patch("edgebuild.system.toolchain.psutil.cpu_count", return_value=None):
            assert detect_cpu_count() == 4
        with patch("edgebuild.system.toolchain.psutil.cpu_count", return_value=12):
            assert detect_cpu_count() == 12

    def test_environment_untouched_without_tuning(self, builder_config):
        env = prepare_build_environment(builder_config, base_env={"PATH": "/bin"})
        assert env == {"PATH": "/bin"}

    def test_tuned_environment(self, builder_config):
        tuned = replace(builder_config, tune_toolchain=True, target_cpu_native=True)

        env = prepare_build_environment(tuned, base_env={})

        assert env["CARGO_INCREMENTAL"] == "1"
        assert env["RUSTFLAGS"] == "-C target-cpu=native"

    def test_tuning_without_native_cpu(self, builder_config):
        tuned = replace(builder_config, tune_toolchain=True, target_cpu_native=False)

        env = prepare_build_environment(tuned, base_env={})

        assert "RUSTFLAGS" not in env

    def test_write_cargo_config(self, builder_config, temp_dir):
        source_dir = temp_dir / "checkout"
        source_dir.mkdir()
        tuned = replace(builder_config, target_cpu_native=True)

        path = write_cargo_config(source_dir, tuned, jobs=6)

        assert path == source_dir / ".cargo" / "config.toml"
        data = toml.load(path)
        assert data["build"]["jobs"] == 6
        assert data["profile"]["release"]["lto"] == "thin"
        assert data["profile"]["release"]["codegen-units"] == 1
        assert data["target"]["aarch64-apple-darwin"]["rustflags"] == ["-C", "target-cpu=native"]
        assert (builder_config.cargo_cache_dir / "sccache").is_dir()
