"""
Tokens de acesso assinados (header.payload.assinatura).

O codec é construído explicitamente a partir da configuração e não guarda
estado mutável: a chave e as opções são fixadas no construtor.
"""
import json
import logging
import time
from typing import Callable, Optional

from jose import JWTError, jwt
from jose.utils import base64url_decode
from pydantic import BaseModel

from app.auth.config import AuthConfig

logger = logging.getLogger(__name__)


class TokenPayload(BaseModel):
    """Claims de um token de acesso."""
    sub: str
    iat: Optional[int] = None
    exp: int


class TokenCodec:
    """Emite e valida tokens de acesso HMAC."""

    __slots__ = ("_secret", "_algorithm", "_ttl_seconds", "_verify_signature", "_clock")

    def __init__(
        self,
        secret: str,
        algorithm: str = "HS256",
        ttl_seconds: int = 24 * 60 * 60,
        verify_signature: bool = True,
        clock: Callable[[], float] = time.time,
    ):
        if not secret:
            raise ValueError("Chave secreta do token não pode estar vazia")

        self._secret = secret
        self._algorithm = algorithm
        self._ttl_seconds = ttl_seconds
        self._verify_signature = verify_signature
        self._clock = clock

    @classmethod
    def from_config(cls, config: AuthConfig, clock: Callable[[], float] = time.time) -> "TokenCodec":
        return cls(
            secret=config.jwt_secret_key,
            algorithm=config.jwt_algorithm,
            ttl_seconds=config.jwt_access_token_expire_minutes * 60,
            verify_signature=config.jwt_verify_signature,
            clock=clock,
        )

    @property
    def ttl_seconds(self) -> int:
        return self._ttl_seconds

    @property
    def verify_signature(self) -> bool:
        return self._verify_signature

    def _now(self) -> int:
        return int(self._clock())

    def issue(self, subject_id: str) -> str:
        """Cria token de acesso para o usuário."""
        issued_at = self._now()
        claims = {
            "sub": str(subject_id),
            "iat": issued_at,
            "exp": issued_at + self._ttl_seconds,
        }
        return jwt.encode(claims, self._secret, algorithm=self._algorithm)

    @staticmethod
    def _unverified_claims(payload_segment: str) -> dict:
        """Lê apenas o segmento do payload; header e assinatura são ignorados."""
        claims = json.loads(base64url_decode(payload_segment.encode("ascii")))
        if not isinstance(claims, dict):
            raise ValueError("Payload do token não é um objeto JSON")
        return claims

    def decode(self, token: str) -> Optional[TokenPayload]:
        """Decodifica e valida o token; retorna None se inválido ou expirado."""
        segments = token.split(".") if token else []
        if len(segments) != 3 or not all(segments):
            logger.debug("Token malformado: esperados três segmentos")
            return None

        try:
            if self._verify_signature:
                claims = jwt.decode(
                    token,
                    self._secret,
                    algorithms=[self._algorithm],
                    options={"verify_exp": False, "verify_iat": False, "verify_nbf": False},
                )
            else:
                claims = self._unverified_claims(segments[1])
        except (JWTError, ValueError) as e:
            logger.debug(f"Erro ao decodificar token: {e}")
            return None

        try:
            payload = TokenPayload.model_validate(claims)
        except ValueError as e:
            logger.debug(f"Claims inválidas no token: {e}")
            return None

        if payload.exp <= self._now():
            logger.debug(f"Token expirado para sub={payload.sub}")
            return None

        return payload

    def verify(self, token: str) -> Optional[str]:
        """Retorna o id do usuário do token, ou None."""
        payload = self.decode(token)
        return payload.sub if payload else None
