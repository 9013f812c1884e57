"""
Provisioning of the global template folder
"""

import json
from typing import Dict, Optional

from config.config import UnifiedConfig, get_config
from services.logging_service import LoggingService
from utils.file_utils import create_folder_if_not_exist, create_text_file_if_not_exist


class TemplateService:
    """Writes the default registry and scripts templates under the global home"""

    def __init__(
        self,
        config: Optional[UnifiedConfig] = None,
        logging_service: Optional[LoggingService] = None,
    ):
        self.config = config or get_config()
        self.logging = logging_service or LoggingService()

    def _templates(self) -> Dict[str, str]:
        dashboard = self.config.dashboard
        templates = self.config.templates
        return {
            dashboard.projects_file_name: json.dumps(templates.projects_template, indent=2),
            dashboard.scripts_file_name: json.dumps(templates.scripts_template, indent=2),
        }

    def copy_templates(self, force: bool = False) -> Dict[str, bool]:
        """
        Ensure the template folder exists and holds every template file.

        Existing files are kept unless force is set (reset).
        Returns file name -> whether it was written.
        """
        templates_dir = self.config.dashboard.templates_dir
        create_folder_if_not_exist(str(templates_dir))

        written = {}
        action = "Reset" if force else "Created"
        for file_name, contents in self._templates().items():
            target = templates_dir / file_name
            try:
                if force:
                    target.write_text(contents, encoding="utf-8")
                    written[file_name] = True
                else:
                    written[file_name] = create_text_file_if_not_exist(str(target), contents)
            except OSError as e:
                self.logging.error(f"Failed to {action.lower()} template file '{file_name}'.", e)
                written[file_name] = False
                continue

            if written[file_name]:
                self.logging.info(f"{action} template file '{file_name}' in global configuration.")

        return written
