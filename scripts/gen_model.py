#!/usr/bin/env python3
"""
gen_model.py - binding model generator entry point

Builds the binding model of each configuration unit and exports it as JSON.

Usage:
    python scripts/gen_model.py [--global PATH] [--output DIR] [--no-xref] UNIT.yaml...
"""

import argparse
import os
import sys

script_dir = os.path.dirname(os.path.abspath(__file__))
root_dir = os.path.abspath(os.path.join(script_dir, '..'))

parser = argparse.ArgumentParser(description='Build binding models')
parser.add_argument('units', nargs='+', help='Unit configuration files (YAML)')
parser.add_argument('--global', dest='global_conf', default=None,
                    help='Global configuration layered under every unit')
parser.add_argument('--output', '-o', default=os.path.join(root_dir, 'gen'),
                    help='Output directory for exported models')
parser.add_argument('--no-xref', action='store_true',
                    help='Skip the cross-reference check')
parser.add_argument('--verbose', '-v', action='store_true',
                    help='Show debug output')
args = parser.parse_args()

sys.path.insert(0, script_dir)

from loguru import logger

from binding_model import Generator


def main():
    logger.remove()
    logger.add(sys.stderr, level='DEBUG' if args.verbose else 'INFO')

    gen = Generator(args.output, args.global_conf, check_references=not args.no_xref)
    if not gen.generate_all(args.units):
        sys.exit(1)


if __name__ == '__main__':
    main()
