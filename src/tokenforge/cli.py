#!/usr/bin/env python3
"""
tokenforge — Write design token files from a build configuration.

Usage:
  tokenforge build tokens.yaml
  tokenforge build tokens.yaml --platform css --platform json
  tokenforge build tokens.yaml --strict      # exit 1 if any file warned
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from tokenforge.build import build_all
from tokenforge.config import load_config
from tokenforge.errors import BuildError
from tokenforge.tokens import load_dictionary


logger = logging.getLogger(__name__)


def cmd_build(args: argparse.Namespace) -> int:
    try:
        config = load_config(args.config)
        dictionary = load_dictionary(config.source)
    except FileNotFoundError as e:
        logger.error(f"File not found: {e.filename}")
        return 2
    except (BuildError, ValueError) as e:
        logger.error(str(e))
        return 2
    except OSError as e:
        logger.error(f"Cannot read {e.filename}: {e.strerror}")
        return 2

    try:
        summary = build_all(config, dictionary, platforms=args.platform)
    except BuildError as e:
        logger.error(str(e))
        return 2
    except OSError as e:
        logger.error(f"Cannot write {e.filename}: {e.strerror}")
        return 2

    if args.strict and not summary.healthy:
        logger.error(f"{len(summary.warnings)} file(s) built with warnings")
        return 1
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog='tokenforge',
        description='Build design token files from resolved tokens',
    )
    subparsers = parser.add_subparsers(dest='command', required=True)

    build = subparsers.add_parser('build', help='Emit every file of the configured platforms')
    build.add_argument('config', type=Path, help='Path to YAML or JSON build configuration')
    build.add_argument('-p', '--platform', action='append',
                       help='Only build this platform (repeatable)')
    build.add_argument('--strict', action='store_true',
                       help='Exit with status 1 if any file reported warnings')
    build.add_argument('-v', '--verbose', action='store_true', help='Enable debug logging')
    build.set_defaults(func=cmd_build)

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s [%(levelname)s] %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    return args.func(args)


if __name__ == '__main__':
    sys.exit(main())
