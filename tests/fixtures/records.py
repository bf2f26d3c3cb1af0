"""Owner records shared by the test suite."""

from pydantic import BaseModel


class Person(BaseModel):
    """Owner record with two fuzzy fields and one computed attribute."""

    id: int
    firstname: str | None = None
    lastname: str | None = None

    @property
    def fullname(self) -> str:
        return f"{self.firstname or ''} {self.lastname or ''}".strip()


SURNAMES = {1: "Andersson", 2: "Anderson", 3: "Johansson"}
