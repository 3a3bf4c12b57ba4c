"""
Módulo de autenticação do MoodMoment.

Implementa:
- Digest de senha e tokens de acesso assinados
- Registro, login e redefinição de senha com token de uso único
- Proteção de endpoints por usuário e por administrador
"""
from app.auth.config import AuthConfig, get_auth_config
from app.auth.dependencies import get_current_user, require_admin
from app.auth.router import router as auth_router

__all__ = [
    "AuthConfig",
    "get_auth_config",
    "get_current_user",
    "require_admin",
    "auth_router",
]
