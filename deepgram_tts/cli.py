"""
CLI module for deepgram_tts package.

Contains command-line argument parsing and main application logic.
"""

import argparse
import os
import sys
from pathlib import Path

import regex as re
from dotenv import load_dotenv

from .errors import ConfigError
from .model import DEFAULT_MODEL, DEFAULT_OUTPUT, KNOWN_MODELS, DeliveryConfig, DeliveryMode, SynthesisRequest
from .transfer import deliver
from .ui import print_models, progress_context, report_error, report_success, setup_logging, state_reporter

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_USAGE = 2
EXIT_NO_API_KEY = 3


# ----------------------------
# Text processing
# ----------------------------
def strip_markdown(raw: str) -> str:
    """Remove Markdown markup so it is not read aloud."""
    txt = re.sub(r"```.*?```", "", raw, flags=re.DOTALL)
    txt = re.sub(r"`([^`]*)`", r"\1", txt)
    txt = re.sub(r"!\[.*?\]\(.*?\)", "", txt)
    txt = re.sub(r"\[([^\]]+)\]\((?:[^)]+)\)", r"\1", txt)
    txt = re.sub(r"^[ \t]{0,3}#{1,6}\s*", "", txt, flags=re.MULTILINE)
    txt = re.sub(r"^[ \t]{0,3}[-*+]\s+", "", txt, flags=re.MULTILINE)
    txt = re.sub(r"^[ \t]{0,3}\d+\.\s+", "", txt, flags=re.MULTILINE)
    txt = re.sub(r"(\*\*|__)(.+?)\1", r"\2", txt)
    txt = re.sub(r"\n{3,}", "\n\n", txt)
    txt = re.sub(r"[ \t]{2,}", " ", txt)
    return txt.strip()


def load_text_file(path: Path) -> str:
    """Load a text or Markdown file and strip its formatting."""
    return strip_markdown(path.read_text(encoding="utf-8"))


# ----------------------------
# CLI setup
# ----------------------------
def create_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser."""
    parser = argparse.ArgumentParser(
        prog="deepgram-tts",
        description="Speak text aloud with Deepgram Aura text-to-speech.",
        epilog=(
            "System requirements: macOS uses the built-in afplay; "
            "Linux needs mpv or ffmpeg; Windows needs ffplay (ffmpeg) on PATH."
        ),
    )
    parser.add_argument("words", nargs="*", metavar="text",
                        help="Text to convert to speech.")
    parser.add_argument("-t", "--text", help="Text to convert to speech (alternative to positional text).")
    parser.add_argument("--text-file", help="Text/Markdown file to read aloud.")

    parser.add_argument("-s", "--stream", action="store_true",
                        help="Play while audio streams in (default: download then play).")
    parser.add_argument("-o", "--output", default=DEFAULT_OUTPUT,
                        help=f"Output file path (default: {DEFAULT_OUTPUT}).")
    parser.add_argument("--no-save", action="store_true",
                        help="Don't keep an output file; streaming writes none, downloads use a temporary file.")
    parser.add_argument("--no-cleanup", action="store_true",
                        help="Keep the audio file after playing.")

    parser.add_argument("-m", "--model", default=os.getenv("DEEPGRAM_TTS_MODEL", DEFAULT_MODEL),
                        help=f"Deepgram model to use (default: {DEFAULT_MODEL}).")
    parser.add_argument("-k", "--api-key", default=None,
                        help="Deepgram API key (or set DEEPGRAM_API_KEY).")
    parser.add_argument("--timeout", type=float, default=None,
                        help="Network timeout in seconds (default: wait indefinitely).")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="Enable verbose output.")
    parser.add_argument("--list-models", action="store_true",
                        help="Print the known Aura models and exit.")

    return parser


def validate_args(args) -> None:
    """Validate command-line arguments."""
    if args.timeout is not None and args.timeout <= 0:
        raise ValueError(f"Timeout must be positive, got {args.timeout}")
    if args.text and args.words:
        raise ValueError("Pass text either with --text or as arguments, not both")
    if args.text_file and (args.text or args.words):
        raise ValueError("--text-file cannot be combined with other text")


def resolve_text(args) -> str:
    """Return the text to speak from --text-file, --text or positional words."""
    if args.text_file:
        return load_text_file(Path(args.text_file))
    if args.text:
        return args.text
    return " ".join(args.words)


def build_config(args) -> DeliveryConfig:
    return DeliveryConfig(
        mode=DeliveryMode.STREAM if args.stream else DeliveryMode.DOWNLOAD,
        output_path=None if args.no_save else Path(args.output),
        retain_file=args.no_cleanup,
        verbose=args.verbose,
        timeout=args.timeout,
    )


# ----------------------------
# Main application logic
# ----------------------------
def main(argv=None):
    """Main entry point for the deepgram-tts CLI application."""
    load_dotenv()

    parser = create_parser()
    args = parser.parse_args(argv)

    try:
        validate_args(args)
    except ValueError as e:
        parser.error(str(e))

    if args.list_models:
        print_models(KNOWN_MODELS, DEFAULT_MODEL)
        sys.exit(EXIT_OK)

    setup_logging(args.verbose)

    if args.text_file and not Path(args.text_file).exists():
        report_error(ConfigError.kind, f"Text file not found: {args.text_file}")
        sys.exit(EXIT_USAGE)

    try:
        text = resolve_text(args)
    except (OSError, UnicodeDecodeError) as e:
        report_error(ConfigError.kind, f"Cannot read text file {args.text_file}: {e}")
        sys.exit(EXIT_USAGE)
    if not text.strip():
        parser.error("No text provided")

    api_key = args.api_key or os.getenv("DEEPGRAM_API_KEY")
    if not api_key:
        report_error(ConfigError.kind, "Missing DEEPGRAM_API_KEY (set it in your environment or .env, or pass --api-key).")
        sys.exit(EXIT_NO_API_KEY)

    try:
        request = SynthesisRequest(text=text, model=args.model, api_key=api_key)
    except ConfigError as e:
        report_error(e.kind, str(e))
        sys.exit(EXIT_USAGE)
    config = build_config(args)

    with progress_context("Preparing…", enabled=not args.verbose) as (progress, task):
        outcome = deliver(request, config, on_state=state_reporter(progress, task))

    if not outcome.ok:
        report_error(outcome.kind, str(outcome.error))
        sys.exit(EXIT_FAILURE)

    if outcome.output_path is not None:
        print(f"Saved audio to: {outcome.output_path}")
    if args.verbose:
        report_success("Completed successfully!")
    sys.exit(EXIT_OK)
