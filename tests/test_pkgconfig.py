"""
Tests for package-metadata (.pc) synthesis.
"""

from pathlib import Path

from subsysbuild.core.models.config import PkgConfigSpec
from subsysbuild.core.services.pkgconfig import render_pc, synthesize, synthesize_spec


class TestRenderPc:
    def test_fields(self):
        text = render_pc(
            "fuse",
            "-lwinfsp-x64",
            prefix="/c/Program\\ Files\\ \\(x86\\)/WinFsp",
            include_subdir="inc",
            lib_subdir="lib",
            description="WinFsp FUSE",
            version="2.8",
            cflags_subdir="fuse",
        )
        lines = text.splitlines()
        assert lines[0] == "prefix=/c/Program\\ Files\\ \\(x86\\)/WinFsp"
        assert "libdir=${prefix}/lib" in lines
        assert "includedir=${prefix}/inc" in lines
        assert "Name: fuse" in lines
        assert "Description: WinFsp FUSE" in lines
        assert "Version: 2.8" in lines
        assert "Libs: -L${libdir} -lwinfsp-x64" in lines
        assert "Cflags: -I${includedir}/fuse" in lines
        assert text.endswith("\n")

    def test_defaults(self):
        text = render_pc("foo", "-lfoo", prefix="/usr")
        assert "Description: foo" in text
        assert "Cflags: -I${includedir}\n" in text


class TestSynthesize:
    def test_creates_directory(self, tmp_path: Path):
        target = tmp_path / "usr" / "local" / "lib" / "pkgconfig"
        path = synthesize(target, "fuse", "-lwinfsp-x64", prefix="/c/WinFsp")
        assert path == target / "fuse.pc"
        assert path.is_file()
        assert "Libs: -L${libdir} -lwinfsp-x64" in path.read_text()

    def test_overwrites_unconditionally(self, tmp_path: Path):
        stale = tmp_path / "fuse.pc"
        stale.write_text("prefix=/stale\nLibs: -lold\n")

        synthesize(tmp_path, "fuse", "-lwinfsp-x64", prefix="/c/WinFsp")

        text = stale.read_text()
        assert "/stale" not in text
        assert text.startswith("prefix=/c/WinFsp\n")

    def test_rewrites_identical_content(self, tmp_path: Path):
        first = synthesize(tmp_path, "fuse", "-lx", prefix="/p").read_text()
        second = synthesize(tmp_path, "fuse", "-lx", prefix="/p").read_text()
        assert first == second

    def test_from_pkgconfig_block(self, tmp_path: Path):
        spec = PkgConfigSpec(name="fuse", link_flag="-lwinfsp-x64", version="2.8", cflags_subdir="fuse")
        path = synthesize_spec(tmp_path, spec, prefix="/c/WinFsp", include_subdir="inc", lib_subdir="x64")
        text = path.read_text()
        assert path.name == "fuse.pc"
        assert "libdir=${prefix}/x64" in text
        assert "Cflags: -I${includedir}/fuse" in text
