"""Tests for ggml_tooling.pipeline (end-to-end orchestration with CMake mocked)."""

import json
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

LINUX = "x86_64-unknown-linux-gnu"


def fake_generate_bindings(header, include_dirs, out_path, allowlist=None, **_kwargs):
    from ggml_tooling.gen import BindingSurface, CFunction

    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_text("# generated\n")
    return out_path, BindingSurface(functions=[CFunction("ggml_init", "c_void_p")])


def _options(root: Path, **kwargs):
    from ggml_tooling.pipeline import PipelineOptions

    kwargs.setdefault("target", LINUX)
    kwargs.setdefault("environ", {})
    return PipelineOptions(project_root=root, **kwargs)


class TestSingleVariant:
    def test_builds_default_and_links_directly(self, ggml_project: Path, ok_run) -> None:
        from ggml_tooling.link import library_directives
        from ggml_tooling.pipeline import run_pipeline

        with (
            patch("ggml_tooling.pipeline.generate_bindings", side_effect=fake_generate_bindings),
            patch("ggml_tooling.build.native.subprocess.run", side_effect=ok_run) as m_run,
        ):
            result = run_pipeline(_options(ggml_project))

        assert m_run.call_count == 3
        assert [a.variant for a in result.artifact_sets] == ["default"]
        assert [d.value for d in library_directives(result.directives)] == ["ggml", "ggml-base", "ggml-cpu"]

        out = ggml_project.resolve() / "build" / "ggml-tooling"
        assert result.metadata_path == out / "metadata.json"
        assert result.metadata == {
            "DEP_GGML_TOOLING_INCLUDE": str(ggml_project.resolve() / "ggml" / "include"),
            "DEP_GGML_TOOLING_LIB_DIR": str(out / "default" / "lib"),
            "DEP_GGML_TOOLING_BIN_DIR": str(out / "default" / "bin"),
            "DEP_GGML_TOOLING_BASENAME": "ggml",
        }
        on_disk = json.loads(result.metadata_path.read_text())["values"]
        assert on_disk == result.metadata

    def test_backend_adds_one_library(self, ggml_project: Path, ok_run) -> None:
        from ggml_tooling.link import library_directives
        from ggml_tooling.pipeline import run_pipeline

        with (
            patch("ggml_tooling.pipeline.generate_bindings", side_effect=fake_generate_bindings),
            patch("ggml_tooling.build.native.subprocess.run", side_effect=ok_run) as m_run,
        ):
            result = run_pipeline(_options(ggml_project, features=["cuda"]))

        configure = m_run.call_args_list[0][0][0]
        assert "-DGGML_CUDA=ON" in configure
        names = [d.value for d in library_directives(result.directives)]
        assert names == ["ggml", "ggml-base", "ggml-cpu", "ggml-cuda"]


class TestMultiVariant:
    def test_no_backends_two_variants(self, ggml_project: Path, ok_run) -> None:
        from ggml_tooling.link import DirectiveKind, library_directives
        from ggml_tooling.metadata import MetadataReader
        from ggml_tooling.pipeline import run_pipeline

        with (
            patch("ggml_tooling.pipeline.generate_bindings", side_effect=fake_generate_bindings) as m_gen,
            patch("ggml_tooling.build.native.subprocess.run", side_effect=ok_run) as m_run,
        ):
            result = run_pipeline(_options(ggml_project, multi_variant=True))

        assert m_gen.call_count == 1
        assert m_run.call_count == 6
        assert [a.basename for a in result.artifact_sets] == ["ggml_llama", "ggml_whisper"]
        assert library_directives(result.directives) == []
        searches = [d for d in result.directives if d.kind == DirectiveKind.SEARCH]
        assert len(searches) == 2

        assert len(result.metadata) == 1 + 3 * 2
        reader = MetadataReader.from_file(result.metadata_path)
        for artifacts in result.artifact_sets:
            assert reader.artifacts(artifacts.variant) == artifacts

    def test_env_switch_and_cli_override(self, ggml_project: Path, ok_run) -> None:
        from ggml_tooling.pipeline import run_pipeline

        env = {"GGML_TOOLING_MULTI_VARIANT": "1"}
        with (
            patch("ggml_tooling.pipeline.generate_bindings", side_effect=fake_generate_bindings),
            patch("ggml_tooling.build.native.subprocess.run", side_effect=ok_run),
        ):
            from_env = run_pipeline(_options(ggml_project, environ=env))
            overridden = run_pipeline(_options(ggml_project, environ=env, multi_variant=False))

        assert from_env.multi_variant is True
        assert len(from_env.artifact_sets) == 2
        assert overridden.multi_variant is False
        assert [a.variant for a in overridden.artifact_sets] == ["default"]

    def test_failed_variant_publishes_nothing(self, ggml_project: Path) -> None:
        from ggml_tooling.errors import NativeBuildError
        from ggml_tooling.pipeline import run_pipeline

        results = iter([0, 0, 0, 1])

        def run(*_args, **_kwargs):
            return MagicMock(returncode=next(results), stdout="", stderr="boom")

        with (
            patch("ggml_tooling.pipeline.generate_bindings", side_effect=fake_generate_bindings),
            patch("ggml_tooling.build.native.subprocess.run", side_effect=run),
            pytest.raises(NativeBuildError) as exc_info,
        ):
            run_pipeline(_options(ggml_project, multi_variant=True))

        assert exc_info.value.variant == "whisper"
        assert not (ggml_project / "build" / "ggml-tooling" / "metadata.json").exists()


class TestDocsShortCircuit:
    @pytest.mark.parametrize("signal", ["READTHEDOCS", "GGML_TOOLING_DOCS_ONLY"])
    def test_bindings_only(self, ggml_project: Path, signal: str) -> None:
        from ggml_tooling.pipeline import run_pipeline

        with (
            patch("ggml_tooling.pipeline.generate_bindings", side_effect=fake_generate_bindings) as m_gen,
            patch("ggml_tooling.build.native.subprocess.run") as m_run,
        ):
            result = run_pipeline(_options(ggml_project, environ={signal: "True"}, multi_variant=True))

        assert m_gen.call_count == 1
        m_run.assert_not_called()
        assert result.docs_only is True
        assert result.bindings_path.is_file()
        assert result.directives == []
        assert result.metadata == {}
        out = ggml_project / "build" / "ggml-tooling"
        assert not (out / "metadata.json").exists()
        assert not (out / "llama").exists()

    def test_run_exits_zero(self, ggml_project: Path, capsys) -> None:
        from ggml_tooling.pipeline import run

        with patch("ggml_tooling.pipeline.generate_bindings", side_effect=fake_generate_bindings):
            rc = run(_options(ggml_project, environ={"READTHEDOCS": "1"}))
        assert rc == 0
        assert "link-lib" not in capsys.readouterr().out

    def test_unbuildable_features_still_produce_bindings(self, ggml_project: Path, capsys) -> None:
        from ggml_tooling.pipeline import run

        with (
            patch("ggml_tooling.pipeline.generate_bindings", side_effect=fake_generate_bindings) as m_gen,
            patch("ggml_tooling.build.native.subprocess.run") as m_run,
        ):
            rc = run(_options(ggml_project, features=["openblas"], environ={"READTHEDOCS": "True"}))

        assert rc == 0
        assert m_gen.call_count == 1
        m_run.assert_not_called()
        assert "BLAS_INCLUDE_DIRS" not in capsys.readouterr().err
        out = ggml_project / "build" / "ggml-tooling"
        assert (out / "bindings.py").is_file()
        assert not (out / "metadata.json").exists()

    def test_all_features_on_docs_builder(self, ggml_project: Path) -> None:
        from ggml_tooling.pipeline import run_pipeline

        every = ["cuda", "metal", "vulkan", "openblas", "hipblas", "intel-sycl", "openmp"]
        env = {"GGML_TOOLING_DOCS_ONLY": ""}
        with patch("ggml_tooling.pipeline.generate_bindings", side_effect=fake_generate_bindings):
            result = run_pipeline(_options(ggml_project, features=every, environ=env))
        assert result.docs_only is True
        assert result.bindings_path.is_file()


class TestFailuresBeforeAnyWrite:
    def test_config_error_touches_nothing(self, ggml_project: Path) -> None:
        from ggml_tooling.errors import ConfigurationError
        from ggml_tooling.pipeline import run_pipeline

        with (
            patch("ggml_tooling.pipeline.generate_bindings") as m_gen,
            pytest.raises(ConfigurationError),
        ):
            run_pipeline(_options(ggml_project, features=["metal"]))
        m_gen.assert_not_called()
        assert not (ggml_project / "build").exists()

    @pytest.mark.parametrize(
        ("features", "target", "variable"),
        [
            (["openblas"], LINUX, "BLAS_INCLUDE_DIRS"),
            (["vulkan"], "x86_64-pc-windows-msvc", "VULKAN_SDK"),
        ],
    )
    def test_missing_sdk_variable_touches_nothing(
        self, ggml_project: Path, features: list[str], target: str, variable: str
    ) -> None:
        from ggml_tooling.errors import ConfigurationError
        from ggml_tooling.pipeline import run_pipeline

        with (
            patch("ggml_tooling.pipeline.generate_bindings") as m_gen,
            patch("ggml_tooling.build.native.subprocess.run") as m_run,
            pytest.raises(ConfigurationError) as exc_info,
        ):
            run_pipeline(_options(ggml_project, features=features, target=target, multi_variant=True))
        assert exc_info.value.context["variable"] == variable
        m_gen.assert_not_called()
        m_run.assert_not_called()
        assert not (ggml_project / "build").exists()

    def test_missing_header_names_absolute_path(self, ggml_project: Path) -> None:
        from ggml_tooling.errors import SourceNotFoundError
        from ggml_tooling.pipeline import run_pipeline

        (ggml_project / "ggml" / "include" / "gguf.h").unlink()
        with (
            patch("ggml_tooling.pipeline.generate_bindings") as m_gen,
            pytest.raises(SourceNotFoundError) as exc_info,
        ):
            run_pipeline(_options(ggml_project))
        m_gen.assert_not_called()
        assert str(ggml_project.resolve() / "ggml" / "include" / "gguf.h") in str(exc_info.value)

    def test_run_reports_error_on_stderr(self, ggml_project: Path, capsys) -> None:
        from ggml_tooling.pipeline import run

        rc = run(_options(ggml_project, features=["hipblas", "intel-sycl"]))
        assert rc == 1
        assert "mutually exclusive" in capsys.readouterr().err


class TestConfigurationSources:
    def test_yaml_features_and_layout(self, ggml_project: Path, ok_run) -> None:
        from ggml_tooling.pipeline import run_pipeline

        (ggml_project / "ggml-tooling.yaml").write_text(
            "out_dir: out\npackage_name: my-ggml\nfeatures: [vulkan]\njobs: 2\n"
        )
        with (
            patch("ggml_tooling.pipeline.generate_bindings", side_effect=fake_generate_bindings),
            patch("ggml_tooling.build.native.subprocess.run", side_effect=ok_run) as m_run,
        ):
            result = run_pipeline(_options(ggml_project))

        assert result.metadata_path == ggml_project.resolve() / "out" / "metadata.json"
        assert "DEP_MY_GGML_BASENAME" in result.metadata
        assert "-DGGML_VULKAN=ON" in m_run.call_args_list[0][0][0]
        assert m_run.call_args_list[1][0][0][-2:] == ["--parallel", "2"]

    def test_env_features_beat_yaml(self, ggml_project: Path, ok_run) -> None:
        from ggml_tooling.pipeline import run_pipeline

        (ggml_project / "ggml-tooling.yaml").write_text("features: [vulkan]\n")
        with (
            patch("ggml_tooling.pipeline.generate_bindings", side_effect=fake_generate_bindings),
            patch("ggml_tooling.build.native.subprocess.run", side_effect=ok_run) as m_run,
        ):
            run_pipeline(_options(ggml_project, environ={"GGML_TOOLING_FEATURES": "cuda"}))

        configure = m_run.call_args_list[0][0][0]
        assert "-DGGML_CUDA=ON" in configure
        assert "-DGGML_VULKAN=ON" not in configure


class TestRun:
    def test_prints_directives_and_is_repeatable(self, ggml_project: Path, ok_run, capsys) -> None:
        from ggml_tooling.pipeline import run

        metadata = ggml_project / "build" / "ggml-tooling" / "metadata.json"
        with (
            patch("ggml_tooling.pipeline.generate_bindings", side_effect=fake_generate_bindings),
            patch("ggml_tooling.build.native.subprocess.run", side_effect=ok_run),
        ):
            assert run(_options(ggml_project)) == 0
            first = metadata.read_bytes()
            assert run(_options(ggml_project)) == 0

        assert metadata.read_bytes() == first
        out = capsys.readouterr().out
        assert "link-lib=dylib=ggml-base" in out
        assert "link-lib=dylib=stdc++" in out

    def test_stage_runtime_dir(self, ggml_project: Path, ok_run) -> None:
        from ggml_tooling.pipeline import run_pipeline

        lib_dir = ggml_project / "build" / "ggml-tooling" / "default" / "lib"
        lib_dir.mkdir(parents=True)
        (lib_dir / "libggml.so").write_bytes(b"\x7fELF")
        dest = ggml_project / "target" / "debug"

        with (
            patch("ggml_tooling.pipeline.generate_bindings", side_effect=fake_generate_bindings),
            patch("ggml_tooling.build.native.subprocess.run", side_effect=ok_run),
        ):
            result = run_pipeline(_options(ggml_project, stage_runtime_dir=dest))

        assert result.staged == [dest / "libggml.so"]

    def test_stage_runtime_dir_apple_copies_blas(self, ggml_project: Path, ok_run) -> None:
        from ggml_tooling.pipeline import run_pipeline

        lib_dir = ggml_project / "build" / "ggml-tooling" / "default" / "lib"
        lib_dir.mkdir(parents=True)
        for name in ("ggml", "ggml-base", "ggml-cpu", "ggml-blas"):
            (lib_dir / f"lib{name}.dylib").write_bytes(b"\xcf\xfa\xed\xfe")
        dest = ggml_project / "target" / "debug"

        with (
            patch("ggml_tooling.pipeline.generate_bindings", side_effect=fake_generate_bindings),
            patch("ggml_tooling.build.native.subprocess.run", side_effect=ok_run),
        ):
            result = run_pipeline(_options(ggml_project, target="aarch64-apple-darwin", stage_runtime_dir=dest))

        assert result.artifact_sets[0].libraries[-1] == "ggml-blas"
        assert dest / "libggml-blas.dylib" in result.staged
