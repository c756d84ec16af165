import sys
import textwrap

import pytest

from mpitest import __main__ as cli
from mpitest.exceptions import LoadError
from mpitest.registry import TestRegistry


def _write(tmp_path, name, source):
    path = tmp_path / name
    path.write_text(textwrap.dedent(source), encoding="utf-8")
    return path


class TestLoadTests:
    """load_tests() -- importing a test file is the registration phase."""

    def test_file_registers_its_tests(self, tmp_path):
        path = _write(tmp_path, "cli_sample_tests.py", """
            import mpitest

            @mpitest.test(1, 2)
            def sample(comm):
                pass
        """)
        cli.load_tests(str(path))
        cases = TestRegistry.instance().cases
        assert [(c.name, c.required_size) for c in cases] == [("sample", 1), ("sample", 2)]

    def test_file_can_import_its_neighbours(self, tmp_path):
        _write(tmp_path, "cli_workload.py", "ANSWER = 42\n")
        path = _write(tmp_path, "cli_neighbour_tests.py", """
            import mpitest
            import cli_workload

            @mpitest.test(1)
            def uses_workload(comm):
                mpitest.expect_eq(cli_workload.ANSWER, 42)
        """)
        module = cli.load_tests(str(path))
        assert module.cli_workload.ANSWER == 42

    def test_main_guard_does_not_run(self, tmp_path):
        path = _write(tmp_path, "cli_guarded_tests.py", """
            import mpitest

            ran = []

            if __name__ == "__main__":
                ran.append(True)
        """)
        assert cli.load_tests(str(path)).ran == []

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(LoadError, match="no such test file"):
            cli.load_tests(str(tmp_path / "absent_tests.py"))

    def test_file_with_error_raises(self, tmp_path):
        path = _write(tmp_path, "cli_broken_tests.py", "raise ImportError('nope')\n")
        with pytest.raises(LoadError, match="cannot import"):
            cli.load_tests(str(path))

    def test_package_directory_imported_as_module(self, tmp_path, monkeypatch):
        package = tmp_path / "cli_sample_pkg"
        package.mkdir()
        _write(package, "__init__.py", """
            import mpitest

            @mpitest.test(1)
            def from_package(comm):
                pass
        """)
        monkeypatch.chdir(tmp_path)
        monkeypatch.syspath_prepend(str(tmp_path))
        try:
            module = cli.load_tests("cli_sample_pkg")
        finally:
            sys.modules.pop("cli_sample_pkg", None)
        assert module.__name__ == "cli_sample_pkg"
        assert [c.name for c in TestRegistry.instance().cases] == ["from_package"]

    def test_unknown_module_raises(self):
        with pytest.raises(LoadError, match="LOAD_ERROR"):
            cli.load_tests("mpitest_no_such_module_anywhere")


class TestMain:

    def test_load_failure_exits_2_without_running(self, tmp_path, monkeypatch, capsys):
        ran = []
        monkeypatch.setattr(cli, "run_main", lambda: ran.append(True) or 0)
        assert cli.main([str(tmp_path / "absent_tests.py")]) == 2
        assert ran == []
        assert capsys.readouterr().err.startswith("LOAD_ERROR: ")

    def test_runs_driver_after_loading(self, tmp_path, monkeypatch):
        path = _write(tmp_path, "cli_run_tests.py", """
            import mpitest

            @mpitest.test(1)
            def one(comm):
                pass
        """)
        seen = []
        monkeypatch.setattr(cli, "run_main", lambda: seen.append(len(TestRegistry.instance())) or 0)
        assert cli.main([str(path)]) == 0
        assert seen == [1]

    def test_requires_at_least_one_target(self):
        with pytest.raises(SystemExit):
            cli.main([])
