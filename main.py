# main.py
"""Offline speech segmenter entry script.

Usage:
    python main.py --input-file=recording.wav [--config=config/vad_config.json] [--logs-dir=logs] [-v]
"""
import sys
import logging
from pathlib import Path

from speech_segmenter.LoggingSetup import setup_logging

SCRIPT_PATH = Path(__file__).resolve()
APP_DIR = SCRIPT_PATH.parent
DEFAULT_CONFIG_PATH = APP_DIR / "config" / "vad_config.json"
DEFAULT_LOGS_DIR = APP_DIR / "logs"


def parse_args(argv: list[str]) -> dict:
    """Parse CLI arguments.

    Args:
        argv: Arguments without the program name

    Returns:
        Dictionary with input_file, config_path, logs_dir and verbose

    Raises:
        SystemExit: If --input-file is missing.
    """
    args = {
        'input_file': None,
        'config_path': DEFAULT_CONFIG_PATH if DEFAULT_CONFIG_PATH.exists() else None,
        'logs_dir': DEFAULT_LOGS_DIR,
        'verbose': "-v" in argv,
    }

    for arg in argv:
        if arg.startswith("--input-file="):
            args['input_file'] = arg.split("=", 1)[1]
        elif arg.startswith("--config="):
            args['config_path'] = Path(arg.split("=", 1)[1])
        elif arg.startswith("--logs-dir="):
            args['logs_dir'] = Path(arg.split("=", 1)[1])

    if args['input_file'] is None:
        print("ERROR: --input-file=path.wav is required.", file=sys.stderr)
        sys.exit(2)

    return args


def main(argv: list[str] | None = None) -> int:
    args = parse_args(sys.argv[1:] if argv is None else argv)

    # Setup logging BEFORE anything else
    setup_logging(args['logs_dir'], verbose=args['verbose'])

    try:
        from speech_segmenter.pipeline import SegmentationPipeline

        pipeline = SegmentationPipeline(
            input_file=args['input_file'],
            config_path=args['config_path'],
            verbose=args['verbose']
        )
        pipeline.run()
        return 0

    except KeyboardInterrupt:
        logging.info("Interrupted by user.")
        return 0
    except Exception as e:
        logging.error(f"ERROR: {type(e).__name__}: {e}")
        import traceback
        logging.error(traceback.format_exc())
        return 1


if __name__ == "__main__":
    sys.exit(main())
