"""Command-line parsing into a ProcessingConfig and an input file list."""

import argparse
import os
import sys
from typing import List, NoReturn, Optional, Sequence, Tuple

from .exceptions import UsageError
from .models import (
    DEFAULT_MAX_MATRIX_ELEMENTS,
    ColorEncoding,
    ExtractionKind,
    ProcessingConfig,
)

# Names accepted by -color; -unprocessed and -qtop have their own flags.
COLOR_NAMES = {
    "sRGB": ColorEncoding.SRGB,
    "AdobeRGB": ColorEncoding.ADOBE_RGB,
    "ProPhotoRGB": ColorEncoding.PROPHOTO_RGB,
}


class _UsageArgumentParser(argparse.ArgumentParser):
    """ArgumentParser that raises UsageError instead of exiting with status 2."""

    def error(self, message: str) -> NoReturn:
        raise UsageError(message)


class _PreviewAction(argparse.Action):
    """-jpg: dump the embedded preview and turn off raw dumping."""

    def __call__(self, parser, namespace, values, option_string=None):
        namespace.extract_preview = True
        namespace.raw_kind = None


class _MetadataAction(argparse.Action):
    """-meta: dump metadata and turn off raw dumping."""

    def __call__(self, parser, namespace, values, option_string=None):
        namespace.extract_metadata = True
        namespace.raw_kind = None


class _LogHistogramAction(argparse.Action):
    """-loghist: histogram output with log exposure bins."""

    def __call__(self, parser, namespace, values, option_string=None):
        namespace.raw_kind = ExtractionKind.HISTOGRAM
        namespace.log_histogram = True


def _color_encoding(name: str) -> ColorEncoding:
    try:
        return COLOR_NAMES[name]
    except KeyError:
        raise argparse.ArgumentTypeError(f"Unknown color encoding: {name}")


def build_parser(prog: str = "x3f-extract") -> argparse.ArgumentParser:
    """
    Build the parser for the classic single-dash switches.

    Switches are applied left to right and a later switch for the same
    field overrides an earlier one. The first token that is not a switch
    starts the list of input files; everything after it is taken
    verbatim.
    """
    parser = _UsageArgumentParser(
        prog=prog,
        usage="%(prog)s <SWITCHES> <file1> ...",
        allow_abbrev=False,
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Dump RAW as DNG next to each input
  x3f-extract photo1.x3f photo2.x3f

  # Dump embedded JPEG and RAW as TIFF into out/
  x3f-extract -o out -jpg -tiff -color sRGB photo.x3f
        """,
    )
    parser.set_defaults(
        extract_preview=False,
        extract_metadata=False,
        raw_kind=ExtractionKind.DNG,
        log_histogram=False,
    )

    parser.add_argument("-o", dest="output_dir", metavar="DIR", help="Use DIR as output dir")
    parser.add_argument(
        "-jpg", nargs=0, action=_PreviewAction, help="Dump embedded JPG. Turn off RAW dumping"
    )
    parser.add_argument(
        "-meta", nargs=0, action=_MetadataAction, help="Dump metadata. Turn off RAW dumping"
    )
    parser.add_argument(
        "-raw", dest="raw_kind", action="store_const", const=ExtractionKind.RAW,
        help="Dump RAW area undecoded",
    )
    parser.add_argument(
        "-tiff", dest="raw_kind", action="store_const", const=ExtractionKind.TIFF,
        help="Dump RAW as TIFF",
    )
    parser.add_argument(
        "-dng", dest="raw_kind", action="store_const", const=ExtractionKind.DNG,
        help="Dump RAW as DNG LinearRaw (default)",
    )
    parser.add_argument(
        "-ppm-ascii", dest="raw_kind", action="store_const", const=ExtractionKind.PPM_ASCII,
        help="Dump RAW/color as 3x16 bit PPM/P3 (ascii)",
    )
    parser.add_argument(
        "-ppm", dest="raw_kind", action="store_const", const=ExtractionKind.PPM_BINARY,
        help="Dump RAW/color as 3x16 bit PPM/P6 (binary)",
    )
    parser.add_argument(
        "-histogram", dest="raw_kind", action="store_const", const=ExtractionKind.HISTOGRAM,
        help="Dump histogram as csv file",
    )
    parser.add_argument(
        "-loghist", nargs=0, action=_LogHistogramAction,
        help="Dump histogram as csv file, with log exposure",
    )
    parser.add_argument(
        "-color", dest="color_encoding", type=_color_encoding, metavar="COLOR",
        help="Convert to RGB color (sRGB, AdobeRGB, ProPhotoRGB)",
    )
    parser.add_argument(
        "-unprocessed", dest="color_encoding", action="store_const",
        const=ColorEncoding.UNPROCESSED, help="Dump RAW without any preprocessing",
    )
    parser.add_argument(
        "-qtop", dest="color_encoding", action="store_const", const=ColorEncoding.QTOP,
        help="Dump Quattro top layer without preprocessing",
    )
    parser.add_argument("-crop", action="store_true", help="Crop to active area")
    parser.add_argument("-denoise", action="store_true", help="Denoise RAW data")
    parser.add_argument("-wb", dest="white_balance", metavar="WB", help="Select white balance preset")
    parser.add_argument("-ocl", dest="use_gpu", action="store_true", help="Use OpenCL")
    parser.add_argument(
        "-offset", dest="legacy_offset", type=int, metavar="OFF",
        help="Offset for SD14 and older (automatic if not given)",
    )
    parser.add_argument(
        "-matrixmax", dest="max_matrix_elements", type=int, metavar="M",
        default=DEFAULT_MAX_MATRIX_ELEMENTS,
        help=f"Max num matrix elements in metadata (def={DEFAULT_MAX_MATRIX_ELEMENTS})",
    )
    parser.add_argument("files", nargs=argparse.REMAINDER, help=argparse.SUPPRESS)
    return parser


def check_switches(parser: argparse.ArgumentParser, argv: Sequence[str]) -> None:
    """
    Reject any switch token that is not exactly a registered option.

    argparse would otherwise accept a bare "-" or "--" as a file name and
    split glued forms such as "-oDIR". Scanning stops at the first token
    that does not start with "-"; switch arguments are skipped.
    """
    options = parser._option_string_actions
    tokens = iter(argv)
    for token in tokens:
        if not token.startswith("-"):
            return
        action = options.get(token)
        if action is None:
            raise UsageError(f"Unknown switch: {token}")
        if action.nargs is None:
            next(tokens, None)


def check_output_dir(path: str) -> None:
    """Fail with UsageError unless ``path`` exists and is a directory."""
    if not os.path.isdir(path):
        raise UsageError(f"Could not find outdir {path}")


def parse_args(
    argv: Optional[Sequence[str]] = None, prog: str = "x3f-extract"
) -> Tuple[ProcessingConfig, List[str]]:
    """
    Parse command-line tokens into a ProcessingConfig plus input files.

    Args:
        argv: Tokens without the program name (defaults to sys.argv[1:])
        prog: Program name used in usage text

    Returns:
        Tuple of (config, input file list)

    Raises:
        UsageError: On an unknown switch, a malformed or missing switch
            argument, a missing output directory, or no input files
    """
    if argv is None:
        argv = sys.argv[1:]
    parser = build_parser(prog)
    check_switches(parser, argv)
    args = parser.parse_args(argv)

    if args.output_dir is not None:
        check_output_dir(args.output_dir)

    if not args.files:
        raise UsageError("No input files given")

    config = ProcessingConfig(
        extract_preview=args.extract_preview,
        extract_metadata=args.extract_metadata,
        raw_kind=args.raw_kind,
        color_encoding=args.color_encoding or ColorEncoding.NONE,
        crop=args.crop,
        denoise=args.denoise,
        log_histogram=args.log_histogram,
        white_balance=args.white_balance,
        use_gpu=args.use_gpu,
        legacy_offset=args.legacy_offset,
        max_matrix_elements=args.max_matrix_elements,
        output_dir=args.output_dir,
    )
    return config, list(args.files)
