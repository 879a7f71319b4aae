"""
Main generator module

Runs the model pipeline (configuration, declaration tree, model, reference
check, export) for each configuration unit and writes one JSON document per
unit for the template merge step.
"""

from pathlib import Path
from typing import Optional
import json

from loguru import logger

from .conf import Config, load_unit
from .errors import ModelError
from .export import export_unit
from .ir import load_ast
from .model import Model
from .xref import build_references


def build_model(conf: Config, ast_path) -> Model:
    """Load a declaration tree and build the model of one unit"""
    logger.info(f'Building model from {ast_path}')
    return Model(conf).process(load_ast(str(ast_path)))


class Generator:
    """Generates the exported model of every configuration unit"""

    def __init__(self, output_root: str, global_conf: Optional[str] = None, check_references: bool = True):
        self.output_root = Path(output_root)
        self.global_conf = global_conf
        self.check_references = check_references
        self.failed: list[str] = []

    def generate_all(self, unit_paths: list[str]) -> bool:
        """Generate all units, returns False if any unit failed"""
        logger.info('=== Building binding models:')
        for path in unit_paths:
            try:
                self.generate_unit(path)
            except ModelError as e:
                logger.error(f'{path}: {e}')
                self.failed.append(path)
        if self.failed:
            logger.error(f'{len(self.failed)} of {len(unit_paths)} units failed: {", ".join(self.failed)}')
        return not self.failed

    def generate_unit(self, path: str) -> dict:
        conf = load_unit(path, self.global_conf)
        ast = conf.get('ast')
        if not ast:
            raise ModelError(f"No 'ast' declaration tree configured in {path}")
        model = build_model(conf, Path(path).parent / ast)
        if self.check_references and conf.get('check_references', True):
            graph = build_references(model)
            logger.debug(f'{path}: {len(graph.referenced)} referenced, {len(graph.omitted)} omitted')
        unit = export_unit(model)

        self.output_root.mkdir(parents=True, exist_ok=True)
        out_path = self.output_root / f'{Path(path).stem}.json'
        with open(out_path, 'w', encoding='utf-8') as f:
            json.dump(unit, f, indent=2)
        logger.info(f'  {path} => {out_path}')
        return unit
