from pydantic import BaseModel


class RequestModel(BaseModel):
    """Base for request bodies; enums are stored as their plain values"""

    class Config:
        use_enum_values = True

    def changes(self) -> dict:
        """Fields the caller actually sent, minus explicit nulls"""
        return {k: v for k, v in self.dict(exclude_unset=True).items() if v is not None}
