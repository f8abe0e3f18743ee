"""Composite request types (ephemeral, never persisted)."""

from dataclasses import dataclass


@dataclass(frozen=True)
class TraitRef:
    """Caller-supplied reference to a trait image.

    image_data may be raw bytes, base64 text or a data URI. If it is too small
    to be a real image, the trait is resolved by url or trait_id instead.
    """
    category: str
    image_data: bytes | str | None = None
    trait_id: str | None = None
    url: str | None = None


@dataclass(frozen=True)
class TraitImage:
    """Normalized trait ready for compositing."""
    category: str                # lower-cased
    image_data: bytes


@dataclass(frozen=True)
class CompositeRequest:
    base_image: bytes
    traits: tuple[TraitImage, ...] = ()
    skipped: tuple[str, ...] = ()    # categories dropped during resolution


@dataclass(frozen=True)
class CompositeResult:
    image: bytes
    traits_used: int
    skipped: tuple[str, ...] = ()
