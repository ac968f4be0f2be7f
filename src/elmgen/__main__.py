"""CLI entry point: `elmgen File.elm` or `python -m elmgen File.elm`."""

import logging
import sys
from pathlib import Path


def main(argv=None) -> int:
    import argparse
    from .compiler.driver import CodegenDriver
    from .utils.io_utils import is_elm_file, read_source_file, write_source_file

    parser = argparse.ArgumentParser(
        prog="elmgen",
        description="Type check an Elm module and print it in elm-format layout.",
    )
    parser.add_argument("file", type=Path, help="Path to .elm source file")
    parser.add_argument("--strict", action="store_true", help="Exit with status 1 on type errors")
    parser.add_argument("--check", action="store_true",
                        help="Do not print; exit with status 1 if the file is not already formatted")
    parser.add_argument("--write", action="store_true", help="Rewrite the file in place")
    parser.add_argument("--verbose", action="store_true", help="Debug logging to stderr")
    parser.add_argument("--dump-trees", type=Path, metavar="DIR",
                        help="Write the checked module as a typed S-expression into DIR")
    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")

    path = args.file.resolve()
    if not path.exists():
        sys.stderr.write(f"elmgen: error: file not found: {path}\n")
        return 1
    if not path.is_file():
        sys.stderr.write(f"elmgen: error: not a file: {path}\n")
        return 1
    if not is_elm_file(path):
        sys.stderr.write(f"elmgen: warning: {path} does not have a .elm extension\n")

    try:
        source = read_source_file(path)
    except (OSError, UnicodeDecodeError) as e:
        sys.stderr.write(f"elmgen: error: could not read file: {e}\n")
        return 1

    driver = CodegenDriver(dump_dir=args.dump_trees)
    try:
        result = driver.format_source(source, str(path))
    except OSError as e:
        sys.stderr.write(f"elmgen: error: could not write tree dump: {e}\n")
        return 1

    if result.has_errors():
        sys.stderr.write(result.reporter.format_all_errors() + "\n")
    if not result.success:
        return 1

    if args.check:
        if result.text != source:
            sys.stderr.write(f"elmgen: {path} is not formatted\n")
            return 1
    elif args.write:
        if result.text != source:
            write_source_file(path, result.text)
    else:
        sys.stdout.write(result.text)

    if args.strict and not result.inference_ok:
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
