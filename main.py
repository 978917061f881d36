#!/usr/bin/env python3
"""
EDI Mapper Command Line Tool

Converts flat EDI documents (newline-separated segments, '*'-separated fields)
into JSON using a declarative mapping configuration.

Usage:
    python main.py input.edi mapping.json                  # Map input.edi -> input.json
    python main.py input.edi mapping.json output.json      # Map to specific output file
    python main.py input.edi mapping.json --dump-segments  # Also print ingested segments
"""

import argparse
import json
import logging
import sys
from pathlib import Path

# Try importing from installed package first, fallback to src path
try:
    from edi_errors import EdiMapperError
    from mapping_config import load_mapping_config
    from transaction import prepare_transaction
except ImportError:
    # Add src to path for imports when not installed
    sys.path.insert(0, str(Path(__file__).parent / "src"))
    from edi_errors import EdiMapperError
    from mapping_config import load_mapping_config
    from transaction import prepare_transaction

logger = logging.getLogger(__name__)


def configure_logging(debug: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="[%(asctime)s] [%(levelname)s] [%(name)s:%(lineno)d] - %(message)s",
        stream=sys.stderr,
        force=True,
    )


def map_edi_file(input_file: str, output_file: str, config_file: str,
                 element_delimiter: str = None, dump_segments: bool = False) -> int:
    """Map an EDI file and save results to JSON."""

    print(f"EDI Mapper - Processing {input_file}")
    print("=" * 50)

    try:
        print(f"Loading EDI file: {input_file}")
        with open(input_file, 'r') as f:
            edi_content = f.read()
        print(f"Loaded {len(edi_content)} characters")

        print(f"Loading mapping config: {config_file}")
        config = load_mapping_config(config_file)
        transaction = prepare_transaction(edi_content, config, element_delimiter)
        st_segment = transaction.document.find_first("ST")
        if st_segment is not None and st_segment.fields:
            print(f"\nTransaction type: {transaction.get_transaction_type()}")
        else:
            print("\nTransaction type: unknown (no ST segment)")

        print(f"  Total Segments: {len(transaction.get_segments())}")
        for loop in transaction.get_loops():
            print(f"  Loop {loop.position} {'/'.join(loop.segment_identifiers)}: {len(loop.contents)} iterations")

        if dump_segments:
            print("\nIngested segments:")
            for segment in transaction.get_segments():
                print(f"  {segment.line_number:>4}  {segment.name:<4} {segment.field_values()}")

        result = transaction.map_segments(config.map)
        json_output = json.dumps(result, indent=2)

        with open(output_file, 'w') as f:
            f.write(json_output)

        print(f"\nJSON output saved to: {output_file}")
        print(f"Output size: {len(json_output):,} characters")
        return 0

    except FileNotFoundError as e:
        print(f"Error: File not found: {e}")
        return 1
    except EdiMapperError as e:
        print(f"Error during EDI mapping: {e}")
        logger.debug("Mapping failed", exc_info=True)
        return 1


def main(argv=None):
    """Main entry point with command line argument parsing."""

    parser = argparse.ArgumentParser(
        description="Map EDI files to JSON using a mapping config",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py enrollment.edi src/mappings/834.benefit_enrollment.json
  python main.py enrollment.edi src/mappings/834.benefit_enrollment.json out.json --debug
        """
    )

    parser.add_argument('input_file', help='Input EDI file')
    parser.add_argument('config_file', help='Mapping config JSON file')
    parser.add_argument('output_file', nargs='?',
                        help='Output JSON file (default: input_file.json)')
    parser.add_argument('--delimiter', default=None,
                        help="Element delimiter (default: from mapping config, usually '*')")
    parser.add_argument('--dump-segments', action='store_true',
                        help='Print the ingested segments')
    parser.add_argument('--debug', action='store_true',
                        help='Enable debug logging')

    args = parser.parse_args(argv)
    configure_logging(args.debug)

    if not args.output_file:
        args.output_file = str(Path(args.input_file).with_suffix('.json'))

    if not Path(args.input_file).exists():
        print(f"Error: Input file not found: {args.input_file}")
        return 1

    return map_edi_file(args.input_file, args.output_file, args.config_file,
                        element_delimiter=args.delimiter, dump_segments=args.dump_segments)


if __name__ == "__main__":
    exit(main())
