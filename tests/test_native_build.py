"""Tests for ggml_tooling.build.native (CMake invocation per variant)."""

from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

LINUX = "x86_64-unknown-linux-gnu"


def _config(features=(), environ=None):
    from ggml_tooling.features import resolve_build_config

    return resolve_build_config(list(features), LINUX, environ=environ or {})


class TestCommands:
    def test_configure_command(self, tmp_path: Path) -> None:
        from ggml_tooling.build import configure_command

        cmd = configure_command(tmp_path / "src", tmp_path / "b", {"A": "1", "B": "OFF"})
        assert cmd == ["cmake", "-S", str(tmp_path / "src"), "-B", str(tmp_path / "b"), "-DA=1", "-DB=OFF"]

    def test_build_command_uses_jobs(self, tmp_path: Path) -> None:
        from ggml_tooling.build import build_command

        cmd = build_command(tmp_path, jobs=3)
        assert cmd[:2] == ["cmake", "--build"]
        assert cmd[-2:] == ["--parallel", "3"]
        assert "Release" in cmd

    def test_build_command_defaults_to_cpu_count(self, tmp_path: Path) -> None:
        from ggml_tooling.build import build_command

        with patch("ggml_tooling.build.native.os.cpu_count", return_value=12):
            assert build_command(tmp_path)[-1] == "12"

    def test_install_command(self, tmp_path: Path) -> None:
        from ggml_tooling.build import install_command

        assert install_command(tmp_path) == ["cmake", "--install", str(tmp_path), "--config", "Release"]

    def test_build_type_from_defines(self) -> None:
        from ggml_tooling.build import build_type

        assert build_type({"CMAKE_BUILD_TYPE": "Debug"}) == "Debug"
        assert build_type({}) == "Release"


class TestVariantDefines:
    def test_default_variant_is_not_renamed(self, tmp_path: Path) -> None:
        from ggml_tooling.build import variant_defines
        from ggml_tooling.variants import DEFAULT_VARIANT

        defines = variant_defines(_config(), DEFAULT_VARIANT, tmp_path / "default")
        assert "GGML_NAME" not in defines
        assert defines["BUILD_SHARED_LIBS"] == "ON"
        assert defines["GGML_BUILD_TESTS"] == "OFF"
        assert defines["GGML_BUILD_EXAMPLES"] == "OFF"
        assert defines["CMAKE_INSTALL_PREFIX"] == str(tmp_path / "default")

    def test_namespaced_variant_sets_ggml_name(self, tmp_path: Path) -> None:
        from ggml_tooling.build import variant_defines
        from ggml_tooling.variants import get_variant

        defines = variant_defines(_config(["cuda"]), get_variant("whisper"), tmp_path / "whisper")
        assert defines["GGML_NAME"] == "ggml_whisper"
        assert defines["GGML_CUDA"] == "ON"

    def test_passthrough_overrides_base(self, tmp_path: Path) -> None:
        from ggml_tooling.build import variant_defines
        from ggml_tooling.variants import DEFAULT_VARIANT

        config = _config(environ={"CMAKE_BUILD_TYPE": "RelWithDebInfo"})
        assert variant_defines(config, DEFAULT_VARIANT, tmp_path)["CMAKE_BUILD_TYPE"] == "RelWithDebInfo"

    def test_environment_cannot_rename_variants(self, tmp_path: Path) -> None:
        from ggml_tooling.build import variant_defines
        from ggml_tooling.variants import VARIANTS

        config = _config(environ={"GGML_NAME": "ggml"})
        names = [variant_defines(config, v, tmp_path / v.name)["GGML_NAME"] for v in VARIANTS]
        assert names == ["ggml_llama", "ggml_whisper"]

    def test_environment_cannot_rename_default_variant(self, tmp_path: Path) -> None:
        from ggml_tooling.build import variant_defines
        from ggml_tooling.variants import DEFAULT_VARIANT

        config = _config(environ={"GGML_NAME": "mylib"})
        assert "GGML_NAME" not in variant_defines(config, DEFAULT_VARIANT, tmp_path)

    def test_environment_cannot_move_install_layout(self, tmp_path: Path) -> None:
        from ggml_tooling.build import variant_defines
        from ggml_tooling.variants import get_variant

        env = {"CMAKE_INSTALL_PREFIX": "/usr/local", "CMAKE_INSTALL_LIBDIR": "lib64"}
        defines = variant_defines(_config(environ=env), get_variant("llama"), tmp_path / "llama")
        assert defines["CMAKE_INSTALL_PREFIX"] == str(tmp_path / "llama")
        assert defines["CMAKE_INSTALL_LIBDIR"] == "lib"
        assert defines["BUILD_SHARED_LIBS"] == "ON"


class TestBuildVariant:
    def test_runs_configure_build_install(self, ggml_project: Path, ok_run) -> None:
        from ggml_tooling.build import build_variant
        from ggml_tooling.variants import get_variant

        out = ggml_project / "out"
        with patch("ggml_tooling.build.native.subprocess.run", side_effect=ok_run) as m_run:
            artifacts = build_variant(_config(), get_variant("llama"), ggml_project / "ggml", out, jobs=2)

        assert m_run.call_count == 3
        configure, build, install = (c[0][0] for c in m_run.call_args_list)
        assert configure[1:3] == ["-S", str((ggml_project / "ggml").resolve())]
        assert "-DGGML_NAME=ggml_llama" in configure
        assert build[1] == "--build"
        assert install[1] == "--install"

        prefix = out.resolve() / "llama"
        assert artifacts.variant == "llama"
        assert artifacts.basename == "ggml_llama"
        assert artifacts.lib_dir == prefix / "lib"
        assert artifacts.bin_dir == prefix / "bin"
        assert artifacts.include_dir == (ggml_project / "ggml").resolve() / "include"
        assert artifacts.libraries == ("ggml_llama", "ggml_llama-base", "ggml_llama-cpu")

    def test_build_and_install_use_configured_build_type(self, ggml_project: Path, ok_run) -> None:
        from ggml_tooling.build import build_variant
        from ggml_tooling.variants import DEFAULT_VARIANT

        config = _config(environ={"CMAKE_BUILD_TYPE": "Debug"})
        with patch("ggml_tooling.build.native.subprocess.run", side_effect=ok_run) as m_run:
            build_variant(config, DEFAULT_VARIANT, ggml_project / "ggml", ggml_project / "out")

        configure, build, install = (c[0][0] for c in m_run.call_args_list)
        assert "-DCMAKE_BUILD_TYPE=Debug" in configure
        assert build[build.index("--config") + 1] == "Debug"
        assert install[install.index("--config") + 1] == "Debug"

    def test_failure_names_variant_and_carries_output(self, ggml_project: Path) -> None:
        from ggml_tooling.build import build_variant
        from ggml_tooling.errors import NativeBuildError
        from ggml_tooling.variants import get_variant

        failed = MagicMock(returncode=2, stdout="", stderr="CMake Error: no compiler")
        with (
            patch("ggml_tooling.build.native.subprocess.run", return_value=failed) as m_run,
            pytest.raises(NativeBuildError) as exc_info,
        ):
            build_variant(_config(), get_variant("whisper"), ggml_project / "ggml", ggml_project / "out")

        err = exc_info.value
        assert m_run.call_count == 1
        assert err.variant == "whisper"
        assert err.code == "E_NATIVE_BUILD"
        assert "configure" in str(err)
        assert "exit code 2" in str(err)
        assert "CMake Error: no compiler" in err.context["stderr"]

    def test_missing_cmake(self, ggml_project: Path) -> None:
        from ggml_tooling.build import build_variant
        from ggml_tooling.errors import NativeBuildError
        from ggml_tooling.variants import DEFAULT_VARIANT

        with (
            patch("ggml_tooling.build.native.subprocess.run", side_effect=FileNotFoundError("cmake")),
            pytest.raises(NativeBuildError, match="not found"),
        ):
            build_variant(_config(), DEFAULT_VARIANT, ggml_project / "ggml", ggml_project / "out")

    def test_patches_package_config_for_namespaced_variant(self, ggml_project: Path, ok_run) -> None:
        from ggml_tooling.build import build_variant
        from ggml_tooling.variants import get_variant

        out = ggml_project / "out"
        cfg = out / "llama" / "lib" / "cmake" / "ggml" / "ggml-config.cmake"
        cfg.parent.mkdir(parents=True)
        cfg.write_text("find_library(GGML_LIBRARY ggml)\nfind_library(GGML_BASE_LIBRARY ggml-base)\n")

        with patch("ggml_tooling.build.native.subprocess.run", side_effect=ok_run):
            build_variant(_config(), get_variant("llama"), ggml_project / "ggml", out)

        text = cfg.read_text()
        assert "find_library(GGML_LIBRARY ggml_llama)" in text
        assert "ggml_llama-base" in text

    def test_prints_progress(self, ggml_project: Path, ok_run, capsys) -> None:
        from ggml_tooling.build import build_variant
        from ggml_tooling.variants import DEFAULT_VARIANT

        with patch("ggml_tooling.build.native.subprocess.run", side_effect=ok_run):
            build_variant(_config(), DEFAULT_VARIANT, ggml_project / "ggml", ggml_project / "out")
        out = capsys.readouterr().out
        assert "Building default variant" in out
