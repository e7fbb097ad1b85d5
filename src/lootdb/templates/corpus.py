"""
Template corpus discovery.

Enumerates the reference table files and the per-type template
directories under the template root. Reference tables are mandatory;
a missing template directory only means zero templates for that type.
"""

import logging
from pathlib import Path
from typing import List

from ..errors import CorpusError
from ..settings.types import BuildConfig
from .models import CorpusLayout


class TemplateCorpusLoader:
    """Finds every template file a build has to read."""

    def __init__(self, config: BuildConfig):
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")
        self.config = config

    def load(self) -> CorpusLayout:
        """Return the corpus layout.

        Raises:
            CorpusError: If the template root or a reference table file is absent
        """
        root = Path(self.config.template_root)
        if not root.is_dir():
            raise CorpusError(f"Template directory not found: {root}")

        layout = CorpusLayout(template_root=root)

        for table in self.config.reference_tables:
            path = root / table.file_name
            if not path.is_file():
                raise CorpusError(f"Reference table {table.name} not found: {path}")
            layout.reference_files[table.name] = path

        if self.config.master_template:
            master = root / self.config.master_template
            if master.is_file():
                layout.master_template = master
            else:
                self.logger.warning(
                    f"{self.config.master_template} not found - affix slot classification disabled"
                )

        for entity in self.config.entity_types:
            if not entity.active:
                self.logger.info(f"Entity type '{entity.name}' is inactive - skipping")
                continue

            type_dir = root / entity.subdir
            if not type_dir.is_dir():
                self.logger.warning(
                    f"Template directory for '{entity.name}' not found: {type_dir} - no templates"
                )
                layout.type_files[entity.name] = []
                layout.missing_types.append(entity.name)
                continue

            files = self._list_templates(type_dir)
            layout.type_files[entity.name] = files
            self.logger.info(f"Found {len(files)} {entity.name} template files in {type_dir}")

        return layout

    @staticmethod
    def _list_templates(directory: Path) -> List[Path]:
        """Return XML files directly inside directory, in stable order."""
        return sorted(path for path in directory.glob("*.xml") if path.is_file())
