from pydantic import BaseModel, Field


class LoginRequest(BaseModel):
    email: str = ""
    password: str = ""


class CurrentUser(BaseModel):
    """
    Identidad de la sesion. `assigned_vessel` vacio = administrador
    (sin restriccion de barco).
    """
    email: str
    name: str = ""
    assigned_vessel: str = Field("", alias="vessel")
    vessel_abbreviation: str = Field("", alias="vesselAbbr")

    @property
    def is_admin(self) -> bool:
        return not self.assigned_vessel

    class Config:
        populate_by_name = True


class LoginResponse(BaseModel):
    ok: bool = True
    user: CurrentUser
