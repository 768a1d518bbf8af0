import argparse
import sys
from pathlib import Path

from .errors import FFSError
from .ffs.ffs import ForwardFluxSampler
from .ffs_input import FFSInput


def cli_parser(prog="pyffs"):
    # A standard way to create and parse command line arguments.
    parser = argparse.ArgumentParser(prog=prog, description="Forward flux sampling of rare transitions.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    run = subparsers.add_parser("run", help="Run forward flux sampling as described by an input file")
    run.add_argument('input', metavar='input', type=str, help="The input file")
    run.add_argument('-o', '--output_dir', metavar='output_dir', type=str, dest='output_dir',
                     help="The directory results are written to (overrides output_dir in the input file)")
    run.add_argument('-q', '--quiet', action='store_true', dest='quiet', help="Only log to the log file")

    regenerate = subparsers.add_parser("regenerate", help="Regenerate one path found by direct ffs")
    regenerate.add_argument('input', metavar='input', type=str, help="The input file of the direct ffs run")
    regenerate.add_argument('-b', '--block', metavar='block', type=int, dest='block', default=0,
                            help="The block the path belongs to")
    regenerate.add_argument('-p', '--path', metavar='path', type=int, dest='path', required=True,
                            help="The index of the path in the final ensemble")
    regenerate.add_argument('-o', '--output', metavar='output', type=str, dest='output',
                            help="The csv file the path is written to")
    regenerate.add_argument('-q', '--quiet', action='store_true', dest='quiet', help="Only log to the log file")
    return parser


def main(argv=None) -> int:
    parser = cli_parser()
    args = parser.parse_args(argv)

    try:
        ffs_input = FFSInput.from_file(args.input)
        output_dir = Path(args.output_dir) if getattr(args, "output_dir", None) else None
        sampler = ForwardFluxSampler(ffs_input, output_dir=output_dir, verbose=not args.quiet)
    except FFSError as e:
        print(f"{type(e).__name__}: {e}", file=sys.stderr)
        return 1

    try:
        if args.command == "run":
            result = sampler.run()
            print(f"flux = {result.flux:g} probability = {result.probability:g} rate = {result.rate:g}")
        else:
            df = sampler.regenerate(args.block, args.path)
            output = Path(args.output) if args.output else \
                sampler.output_dir / f"path_block{args.block}_{args.path}.csv"
            df.to_csv(output, index=False)
            print(f"Wrote {len(df)} steps to {output}")
    except FFSError as e:
        print(f"{type(e).__name__}: {e}", file=sys.stderr)
        return 1
    finally:
        sampler.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
