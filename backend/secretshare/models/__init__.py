from secretshare.models.secret import Secret

__all__ = ["Secret"]
