from typing import Annotated, Optional

from pydantic import AliasChoices, BaseModel, Field

from app.auth.schemas import NonEmptyStr, UserResponse


class ProfileUpdate(BaseModel):
    """Atualização de perfil: nome obrigatório, senha opcional."""
    full_name: Annotated[
        str,
        Field(
            min_length=1,
            max_length=100,
            validation_alias=AliasChoices("fullName", "full_name"),
        )
    ]
    new_password: Optional[NonEmptyStr] = Field(
        default=None,
        validation_alias=AliasChoices("newPassword", "new_password"),
    )


class ProfileResponse(BaseModel):
    user: UserResponse
