#!/usr/bin/env python3
"""
Accessible Filter CLI

Command-line interface for running the accessibility pipeline over HTML files.

Usage:
    python -m accessible_filter page.html [options]
    accessible-filter page.html [options]
"""

import argparse
import logging
import sys
from pathlib import Path

from . import __version__
from .config import TOGGLES, ConfigurationError
from .pipeline import convert_html_file


def setup_logging(verbose: bool = False) -> None:
    """Configure logging based on verbosity."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format='%(levelname)s: %(message)s'
    )


def parse_args(args: list = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog='accessible-filter',
        description='Rewrite an HTML document to be more accessible',
        epilog='Example: accessible-filter page.html --disable display-all-roles'
    )

    parser.add_argument(
        'input',
        type=str,
        help='Path to input HTML file'
    )

    parser.add_argument(
        '-o', '--output',
        type=str,
        default=None,
        help='Output file (default: <input>.accessible.html)'
    )

    parser.add_argument(
        '--disable',
        action='append',
        default=[],
        choices=TOGGLES,
        metavar='TOGGLE',
        help='Disable one transformation; repeat for several (see --list-toggles)'
    )

    parser.add_argument(
        '--list-toggles',
        action='store_true',
        help='Print the recognized toggle names and exit'
    )

    parser.add_argument(
        '--config',
        type=str,
        default=None,
        help='JSON rules file overriding the bundled texts and skippers'
    )

    parser.add_argument(
        '--locale',
        type=str,
        default=None,
        help='Locale of the texts added to the page (default: system locale)'
    )

    parser.add_argument(
        '--base-url',
        type=str,
        default=None,
        help='URL the page is served from (default: file URL of the input)'
    )

    parser.add_argument(
        '--user-agent',
        type=str,
        default='',
        help='User agent used to describe keyboard shortcuts'
    )

    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Enable verbose output'
    )

    parser.add_argument(
        '--version',
        action='version',
        version=f'%(prog)s {__version__}'
    )

    return parser.parse_args(args)


def main(args: list = None) -> int:
    """
    Main entry point for CLI.

    Args:
        args: Command-line arguments (default: sys.argv)

    Returns:
        Exit code (0 for success, 1 for error)
    """
    if args is None:
        args = sys.argv[1:]
    if '--list-toggles' in args:
        print('\n'.join(TOGGLES))
        return 0

    parsed = parse_args(args)
    setup_logging(parsed.verbose)

    logger = logging.getLogger(__name__)

    input_path = Path(parsed.input)
    if not input_path.exists():
        logger.error(f"Input file not found: {input_path}")
        return 1

    if input_path.suffix.lower() not in ('.html', '.htm', '.xhtml'):
        logger.warning(f"Input file may not be HTML: {input_path}")

    settings = {name: 'false' for name in parsed.disable}
    options = {
        'settings': settings,
        'rules_path': parsed.config,
        'locale': parsed.locale,
        'user_agent': parsed.user_agent,
    }
    if parsed.base_url:
        options['base_url'] = parsed.base_url

    logger.info(f"Converting: {input_path}")
    try:
        output_path = convert_html_file(str(input_path), parsed.output, **options)
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        return 1
    except UnicodeDecodeError as e:
        logger.error(f"Input file is not UTF-8: {input_path} ({e})")
        return 1
    except OSError as e:
        logger.error(f"Could not convert {input_path}: {e}")
        return 1

    print(f"Accessible HTML written to: {output_path}")
    return 0


if __name__ == '__main__':
    sys.exit(main())
