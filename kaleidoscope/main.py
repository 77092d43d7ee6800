"""Runs the Kaleidoscope interpreter on a .ks file or in command-line mode. Also uses the error handling context
manager, so that a failure to start the session (the only fatal error) is reported cleanly. Called from the
kaleidoscope console script and from `python -m kaleidoscope`.
"""

import argparse
import sys

from kaleidoscope.lang.error import ErrorHandler, KaleidoscopeError
from kaleidoscope.lang.session import Session
from kaleidoscope.lang.shell import Shell


def build_parser():
    parser = argparse.ArgumentParser(prog="kaleidoscope", description="Kaleidoscope read-compile-execute loop.")
    parser.add_argument("file", help="file to run (if empty, goes to command-line mode)", nargs="?")
    parser.add_argument("-d", "--dump", action="store_true", help="print every function after optimization")
    return parser


def main(argv=None):
    """Runs the Kaleidoscope interpreter. Returns the process exit status."""
    args = build_parser().parse_args(argv)

    with ErrorHandler() as error_handler:
        if args.file is not None:
            try:
                source = open(args.file, "r")
            except OSError:
                raise KaleidoscopeError("'{}' could not be opened", args.file)

            with source:
                sess = Session(error_handler, args.file, dump=args.dump)
                sess.run(source)

        else:
            Shell(Session(error_handler, Session.SH_FILE, dump=args.dump)).cmdloop()

    return 1 if args.file is not None and error_handler.errors else 0


if __name__ == "__main__":
    sys.exit(main())
