# ==============================================================================
# SERVICIO DE AUTENTICACIÓN
# ==============================================================================
# Login contra los usuarios del store local (sincronizados desde la hoja).
#
# IMPORTANTE: las contraseñas viven en texto plano en la hoja remota y se
# comparan tal cual. El rol solo decide la navegación, no es seguridad.
# ==============================================================================

from typing import Any, Dict, FrozenSet, Optional

from pos_sync.models import User, UserRole
from pos_sync.repositories.cache_store import LocalCacheStore
from pos_sync.sync_logger import log_sync_event


class AuthService:
    """
    Servicio de login y permisos de navegación.

    Responsabilidades:
    - Validar usuario/contraseña
    - Vista inicial según rol
    - Vistas permitidas por rol
    """

    # Admin local cuando la hoja todavía no trajo usuarios
    FALLBACK_ADMIN = User('admin', 'Admin Local', 'admin', UserRole.ADMIN, '123')

    LANDING_VIEWS = {
        UserRole.WAREHOUSE: 'inventory',
        UserRole.SELLER: 'sales',
        UserRole.ADMIN: 'dashboard',
    }

    ALLOWED_VIEWS: Dict[UserRole, FrozenSet[str]] = {
        UserRole.ADMIN: frozenset([
            'dashboard', 'sales', 'purchases', 'returns', 'inventory', 'apps', 'customers', 'users',
        ]),
        UserRole.SELLER: frozenset(['sales', 'returns', 'customers', 'apps']),
        UserRole.WAREHOUSE: frozenset(['inventory', 'apps']),
    }

    def __init__(self, store: LocalCacheStore):
        """
        Args:
            store: Store local con la colección de usuarios
        """
        self.store = store

    def authenticate(self, username: str, password: str) -> Optional[User]:
        """
        Valida credenciales.

        Returns:
            El usuario autenticado o None
        """
        username = (username or '').strip()
        users = self.store.get_all('users') or [self.FALLBACK_ADMIN]
        for user in users:
            if user.username == username and user.password == (password or ''):
                log_sync_event('AUTH', f"Login de '{username}' ({user.role.value})")
                return user
        log_sync_event('AUTH', f"Login fallido para '{username}'", level='WARNING')
        return None

    def landing_view(self, role: UserRole) -> str:
        return self.LANDING_VIEWS.get(role, 'dashboard')

    def allowed_views(self, role: UserRole) -> FrozenSet[str]:
        return self.ALLOWED_VIEWS.get(role, frozenset())

    def can_access(self, role: UserRole, view: str) -> bool:
        return view in self.allowed_views(role)

    def login(self, username: str, password: str) -> Dict[str, Any]:
        """
        Login completo para la API.

        Returns:
            Dict con ok, error, user (sin contraseña), view, views
        """
        user = self.authenticate(username, password)
        if user is None:
            return {'ok': False, 'error': 'Usuario o contraseña incorrectos'}
        public = user.to_dict()
        public.pop('password', None)
        return {
            'ok': True,
            'user': public,
            'view': self.landing_view(user.role),
            'views': sorted(self.allowed_views(user.role)),
        }
