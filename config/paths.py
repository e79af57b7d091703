"""Project paths configuration for OSC Relay.

Define rutas estándar del proyecto y de los archivos de configuración y logs.
"""

from pathlib import Path


class ProjectPaths:
    """Configuración centralizada de paths del proyecto."""

    def __init__(self, root_path: Path = None):
        """Inicializa las rutas del proyecto.

        Args:
            root_path: Ruta raíz del proyecto. Si es None, se detecta automáticamente.
        """
        if root_path is None:
            # Detectar automáticamente la raíz del proyecto
            current = Path(__file__).parent
            while current.parent != current:
                if (current / 'pyproject.toml').exists():
                    root_path = current
                    break
                current = current.parent
            else:
                # Fallback: usar el directorio padre de config
                root_path = Path(__file__).parent.parent

        self.ROOT = Path(root_path).resolve()

        # Directorios principales
        self.MODULES = self.ROOT / 'modules'
        self.API = self.ROOT / 'api'
        self.CORE = self.ROOT / 'core'
        self.SERVICES = self.ROOT / 'services'
        self.ADAPTERS = self.ROOT / 'adapters'
        self.CONFIG = self.ROOT / 'config'
        self.TESTS = self.ROOT / 'tests'

        # Archivos de configuración
        self.PYPROJECT_TOML = self.ROOT / 'pyproject.toml'
        self.CLIENT_CONFIG = self.ROOT / 'Client-Config.yml'
        self.SERVER_CONFIG = self.ROOT / 'Server-Config.yml'

    def resolve(self, path) -> Path:
        """Resuelve una ruta relativa contra la raíz del proyecto.

        Args:
            path: Ruta absoluta o relativa (ej: 'logs/client')

        Returns:
            Ruta absoluta
        """
        path = Path(path)
        if path.is_absolute():
            return path
        return self.ROOT / path

    def __str__(self) -> str:
        """Representación string de las rutas del proyecto."""
        return f"ProjectPaths(root={self.ROOT})"

