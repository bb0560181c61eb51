#!/usr/bin/env python3
"""
Agricultural Lab Report Extraction - Main Entry Point.

Command-line interface to the extraction pipeline. Reads one soil or
leaf analysis report (PDF or image) and writes the canonical JSON
result.

Usage:
    Command Line:
        python main.py --input report.pdf
        python main.py --input leaf.jpg --sample-type leaf --output result.json

    Python:
        from main import run_extraction
        result = run_extraction("report.pdf", sample_type="soil")
"""

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Dict, Optional

# Add project root to path for imports
PROJECT_ROOT = Path(__file__).parent
sys.path.insert(0, str(PROJECT_ROOT))

from config import ConfigurationManager
from agrilab.input_handler import ExtractionRequest, SampleMetadata
from agrilab.pipeline import ExtractionOrchestrator
from agrilab.utils.exceptions import LabExtractionError
from agrilab.utils.logger import get_logger, set_level, setup_logger_from_config


def parse_arguments(argv: Optional[list] = None) -> argparse.Namespace:
    """
    Parse command-line arguments.

    Returns:
        Parsed argument namespace.
    """
    parser = argparse.ArgumentParser(
        description="Agricultural Lab Report Extraction",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    Extract a soil report to stdout:
        python main.py --input soil_report.pdf --sample-type soil

    Extract a leaf report to a file:
        python main.py --input leaf.jpg --sample-id L-042 --output leaf.json
        """
    )

    parser.add_argument(
        "--input", "-i",
        type=str,
        required=True,
        help="Lab report file (PDF or image)"
    )

    parser.add_argument(
        "--mime-type",
        type=str,
        default=None,
        help="MIME type of the input (default: guessed from the extension)"
    )

    parser.add_argument(
        "--sample-type",
        choices=["soil", "leaf", "unknown"],
        default=None,
        help="Analysis type hint"
    )

    # Sample metadata
    parser.add_argument("--sample-id", type=str, default=None, help="Sample identifier")
    parser.add_argument("--date", type=str, default=None, help="Sampling date")
    parser.add_argument("--location", type=str, default=None, help="Sampling location")

    parser.add_argument(
        "--output", "-o",
        type=str,
        default=None,
        help="Output JSON file (default: stdout)"
    )

    parser.add_argument(
        "--config", "-c",
        type=str,
        default=None,
        help="Path to custom configuration file"
    )

    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging"
    )

    return parser.parse_args(argv)


def initialize_system(args: argparse.Namespace) -> ConfigurationManager:
    """
    Load configuration and set up logging.

    Args:
        args: Parsed command-line arguments.

    Returns:
        Initialized configuration manager.
    """
    if args.config:
        ConfigurationManager.reset()
    config = ConfigurationManager(args.config)

    logger = setup_logger_from_config()
    if args.debug:
        set_level("DEBUG")

    logger.info(f"Lab report extraction v{config.get('project.version', '1.0.0')}")
    return config


def run_extraction(
    input_path: str,
    mime_type: Optional[str] = None,
    sample_type: Optional[str] = None,
    metadata: Optional[SampleMetadata] = None
) -> Dict[str, Any]:
    """
    Run the extraction pipeline on one file.

    Args:
        input_path: Path to the lab report.
        mime_type: MIME type; guessed from the extension when None.
        sample_type: Optional "soil"/"leaf" hint.
        metadata: Optional sample details.

    Returns:
        Canonical result dictionary.

    Raises:
        FileNotFoundError: If the input does not exist.
        UnsupportedInputError: If the document cannot be read.
    """
    logger = get_logger(__name__)
    path = Path(input_path)

    if not path.is_file():
        raise FileNotFoundError(f"Input file not found: {path}")

    request = ExtractionRequest.from_file(path, mime_type, sample_type, metadata)
    orchestrator = ExtractionOrchestrator.from_config()

    def log_progress(percent: int) -> None:
        logger.debug(f"OCR progress: {percent}%")

    result = orchestrator.extract_sync(request, progress=log_progress)

    if result.needs_review:
        logger.warning(f"Result for {path.name} should be reviewed ({result.tier_used.value} tier)")

    return result.to_dict()


def main(argv: Optional[list] = None) -> int:
    """
    Main function - entry point for command-line execution.

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    args = parse_arguments(argv)

    try:
        initialize_system(args)
        logger = get_logger(__name__)

        metadata = SampleMetadata(
            sample_id=args.sample_id,
            date=args.date,
            location=args.location
        )
        result = run_extraction(args.input, args.mime_type, args.sample_type, metadata)

        output = json.dumps(result, indent=2)
        if args.output:
            output_path = Path(args.output)
            output_path.parent.mkdir(parents=True, exist_ok=True)
            output_path.write_text(output, encoding="utf-8")
            logger.info(f"Result written to {output_path}")
        else:
            print(output)

        return 0

    except FileNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    except LabExtractionError as e:
        print(f"Extraction error: {e}", file=sys.stderr)
        return 2

    except KeyboardInterrupt:
        print("\nInterrupted by user", file=sys.stderr)
        return 130


if __name__ == "__main__":
    sys.exit(main())
