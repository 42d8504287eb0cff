"""Application services: token issuance and the reset workflow."""

from app.application.services.reset_workflow import ResetWorkflow
from app.application.services.token_issuer import TokenIssuer

__all__ = [
    "ResetWorkflow",
    "TokenIssuer",
]
