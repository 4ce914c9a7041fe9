from pydantic import BaseModel


class ReconcileResponse(BaseModel):
    attempted: int
    reconciled: int
    remaining: int
