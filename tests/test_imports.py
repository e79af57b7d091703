"""Tests para verificar la salud de los imports del proyecto."""

import ast
from pathlib import Path

import pytest

project_root = Path(__file__).parent.parent

SOURCE_DIRS = ["core", "modules", "api", "services", "config"]


class TestImportHealth:
    """Tests para verificar que no hay problemas con los imports."""

    def test_services_import(self):
        """Verifica que los servicios se pueden importar sin error."""
        try:
            from services.bridge_service import BridgeService
            from services.hub_service import HubService
        except ImportError as e:
            pytest.fail(f"Error importando servicios: {e}")

    def test_modules_import(self):
        try:
            import modules.oscrelay_bridge
            import modules.oscrelay_config
            import modules.oscrelay_filter
            import modules.oscrelay_hub
            import modules.oscrelay_link
            import modules.oscrelay_query
            import modules.oscrelay_transport
        except ImportError as e:
            pytest.fail(f"Error importando módulos principales: {e}")

    def test_adapters_import(self):
        from adapters.interfaces import BaseService, QueryAdvertiserInterface, ServiceStatus
        from modules.oscrelay_query import OSCQueryService

        assert issubclass(OSCQueryService, QueryAdvertiserInterface)
        assert ServiceStatus.RUNNING.value == "running"
        assert BaseService.restart

    def test_no_relative_imports(self):
        """Verifica que no hay imports relativos fuera de los __init__."""
        offenders = []
        for directory in SOURCE_DIRS:
            for path in (project_root / directory).rglob("*.py"):
                if path.name == "__init__.py":
                    continue
                tree = ast.parse(path.read_text(encoding="utf-8"))
                for node in ast.walk(tree):
                    if isinstance(node, ast.ImportFrom) and node.level > 0:
                        offenders.append(f"{path.relative_to(project_root)}:{node.lineno}")

        assert offenders == [], f"Imports relativos encontrados: {offenders}"
