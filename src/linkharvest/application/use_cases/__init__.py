from .resolve_link import ResolveLinkUseCase

__all__ = ["ResolveLinkUseCase"]
