# mpitest/__main__.py
# Command-line entry point.
#
# Standard invocation:
#   mpiexec -n 4 python -m mpitest examples/dummy_tests.py
#   mpiexec -n 4 python -m mpitest mypackage.tests.test_halo
#
# Each argument is a test file path or an importable module or package name
# (a package directory in the current directory counts as a name). Importing
# it registers its tests; once every argument is loaded the driver runs.
# No other options: behavior depends only on the declared tests and on the
# number of processes launched.
#
# EXIT CODES:
#   0  -- Run completed (assertion failures do not change the exit code).
#   2  -- A test file or module could not be imported. Nothing ran.

import argparse
import importlib
import importlib.util
import sys
from pathlib import Path
from types import ModuleType
from typing import List, Optional

from mpitest.driver import main as run_main
from mpitest.exceptions import LoadError
from mpitest.version import HARNESS_VERSION


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description=f"mpitest {HARNESS_VERSION} -- run declared MPI tests",
        prog="python -m mpitest",
    )
    parser.add_argument(
        "tests",
        nargs="+",
        help="Test file paths or importable module names declaring tests.",
    )
    return parser.parse_args(argv)


def load_tests(target: str) -> ModuleType:
    """
    Import one test file or module, registering the tests it declares.

    A path is imported under a name derived from its stem, with its directory
    put first on sys.path the way the interpreter does for a script.
    """
    path = Path(target)
    try:
        if path.suffix == ".py" or path.is_file():
            if not path.is_file():
                raise LoadError(f"no such test file: {target}", subject=target)
            directory = str(path.resolve().parent)
            if directory not in sys.path:
                sys.path.insert(0, directory)
            spec = importlib.util.spec_from_file_location(path.stem, path)
            module = importlib.util.module_from_spec(spec)
            sys.modules[path.stem] = module
            try:
                spec.loader.exec_module(module)
            except BaseException:
                sys.modules.pop(path.stem, None)
                raise
            return module
        return importlib.import_module(target)
    except LoadError:
        raise
    except Exception as exc:
        raise LoadError(f"cannot import {target}: {exc}", subject=target) from exc


def main(argv: Optional[List[str]] = None) -> int:
    args = _parse_args(argv)
    try:
        for target in args.tests:
            load_tests(target)
    except LoadError as exc:
        sys.stderr.write(f"{exc.message}\n")
        return 2
    return run_main()


if __name__ == "__main__":
    sys.exit(main())
