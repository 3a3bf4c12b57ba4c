"""
Router administrativo: listagem de usuários e de check-ins de qualquer usuário.
"""
import logging
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy import desc
from sqlalchemy.orm import Session

from app.auth.dependencies import AdminUser
from app.auth.models import User
from app.auth.schemas import UserResponse
from app.config import get_settings
from app.core.exceptions import NotFoundError
from app.dependencies import get_db_session
from app.moods.repository import MoodRepository
from app.moods.schemas import MoodResponse

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix=get_settings().api_path("/admin"),
    tags=["admin"],
    responses={
        401: {"description": "Token ausente ou inválido"},
        403: {"description": "Privilégios de administrador requeridos"},
    }
)


@router.get(
    "/users",
    response_model=List[UserResponse],
    summary="Listar usuários",
)
async def list_users(
    admin: AdminUser,
    db: Session = Depends(get_db_session),
) -> List[UserResponse]:
    """Todos os usuários, mais recentes primeiro."""
    users = db.query(User).order_by(desc(User.created_at)).all()
    logger.info(f"Admin {admin.id} listou {len(users)} usuários")
    return [UserResponse.model_validate(user) for user in users]


@router.get(
    "/user/{user_id}/moods",
    response_model=List[MoodResponse],
    summary="Check-ins de um usuário",
    responses={404: {"description": "Usuário não encontrado"}}
)
async def list_user_moods(
    user_id: str,
    admin: AdminUser,
    db: Session = Depends(get_db_session),
) -> List[MoodResponse]:
    """Check-ins do usuário indicado, mais recentes primeiro."""
    if db.get(User, user_id) is None:
        raise NotFoundError("Usuário", user_id)

    entries = MoodRepository(db).list_for_user(user_id)
    return [MoodResponse.model_validate(entry) for entry in entries]
