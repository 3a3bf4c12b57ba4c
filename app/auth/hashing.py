"""
Hashing de senhas.

O esquema padrão (``email_sha256``) é o digest SHA-256 hexadecimal de
``senha + email``: determinístico e sem salt aleatório. O email funciona
como salt, por isso a troca de email exigiria refazer o digest. O esquema
``bcrypt`` pode ser ativado para novos digests; os digests legados
continuam sendo verificados e são atualizados no próximo login.
"""
import logging
from typing import Optional

from passlib.context import CryptContext

from app.auth.config import AuthConfig

logger = logging.getLogger(__name__)

# Nome do esquema na configuração -> nome do handler no passlib
SCHEMES = {
    "email_sha256": "hex_sha256",
    "bcrypt": "bcrypt",
}


class CredentialHasher:
    """Transforma (senha, email) em digest e verifica digests armazenados."""

    def __init__(self, scheme: str = "email_sha256", bcrypt_rounds: int = 12):
        if scheme not in SCHEMES:
            raise ValueError(f"Esquema de senha desconhecido: {scheme}")

        self.scheme = scheme
        self._default = SCHEMES[scheme]
        self._context = CryptContext(
            schemes=[self._default] + [s for s in SCHEMES.values() if s != self._default],
            default=self._default,
            deprecated="auto",
            bcrypt__rounds=bcrypt_rounds,
        )

    @classmethod
    def from_config(cls, config: AuthConfig) -> "CredentialHasher":
        return cls(scheme=config.password_scheme, bcrypt_rounds=config.bcrypt_rounds)

    @staticmethod
    def _secret(password: str, email: str, handler: str) -> str:
        if handler == "hex_sha256":
            return password + email
        return password

    def hash(self, password: str, email: str) -> str:
        """Gera digest da senha com o esquema configurado."""
        return self._context.hash(self._secret(password, email, self._default))

    def identify(self, hashed: str) -> Optional[str]:
        return self._context.identify(hashed, required=False)

    def verify(self, password: str, email: str, hashed: str) -> bool:
        """Verifica a senha contra um digest armazenado (comparação em tempo constante)."""
        handler = self.identify(hashed)
        if handler is None:
            logger.warning("Digest de senha em formato desconhecido")
            return False

        return self._context.verify(self._secret(password, email, handler), hashed)

    def needs_rehash(self, hashed: str) -> bool:
        """Indica se o digest usa um esquema diferente do configurado."""
        if self.identify(hashed) is None:
            return True
        return self._context.needs_update(hashed)
