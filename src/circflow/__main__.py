"""CLI entry point: run `circflow file.circom` or `python -m circflow file.circom`."""

import sys
from pathlib import Path


def main(argv=None) -> int:
    import argparse
    import logging
    from .analysis.cfg import build_flowgraph
    from .compiler.driver import AnalysisDriver
    from .shared.errors import CircflowImplementationError
    from .utils.io_utils import read_source_file

    parser = argparse.ArgumentParser(prog="circflow", description="Analyse a circuit (.circom) file.")
    parser.add_argument("file", type=Path, help="Path to .circom source file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log analysis progress")
    parser.add_argument("--dot", metavar="TEMPLATE", help="Print the control flow graph of TEMPLATE as DOT")
    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")

    path = args.file.resolve()
    if not path.exists():
        sys.stderr.write(f"circflow: error: file not found: {path}\n")
        return 1
    if not path.is_file():
        sys.stderr.write(f"circflow: error: not a file: {path}\n")
        return 1

    try:
        source = read_source_file(path)
    except (OSError, UnicodeDecodeError) as e:
        sys.stderr.write(f"circflow: error: could not read file: {e}\n")
        return 1

    driver = AnalysisDriver()
    try:
        result = driver.analyze(source, str(path))
        if args.dot and result.program is not None:
            if not result.program.contains_template(args.dot):
                sys.stderr.write(f"circflow: error: no template named `{args.dot}` in {path}\n")
                return 1
            sys.stdout.write(build_flowgraph(result.program, args.dot).to_dot() + "\n")
    except CircflowImplementationError as e:
        sys.stderr.write(f"circflow: internal error: {e}\n")
        return 2

    diagnostics = result.format_diagnostics()
    if diagnostics:
        sys.stderr.write(diagnostics + "\n")

    return 1 if result.has_errors() else 0


if __name__ == "__main__":
    sys.exit(main())
