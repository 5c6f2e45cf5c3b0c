from sqlmodel import Field, SQLModel


class ServiceTypeBase(SQLModel):
    name: str = Field(unique=True, index=True, max_length=100)
    is_active: bool = True


class ServiceType(ServiceTypeBase, table=True):
    __tablename__ = "service_types"
    id: int | None = Field(default=None, primary_key=True)


class ServiceTypePublic(SQLModel):
    id: int
    name: str
    is_active: bool
