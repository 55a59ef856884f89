"""Packing of provider links into the fixed provider slots of an account row.

Each known provider owns four contiguous fields of the row, starting at its
offset in ``PROVIDER_SLOT_OFFSETS``:

    offset + 0  rawId
    offset + 1  email
    offset + 2  displayName
    offset + 3  photoUrl

A row can hold at most one link per provider. When an account carries several
links for the same provider, the last one packed wins. Links for providers
without a slot are left out of the row.
"""

from collections.abc import Iterable

import structlog

from ..constants import PROVIDER_SLOT_COUNT, PROVIDER_SLOT_OFFSETS
from ..models.user import ProviderLink

logger = structlog.get_logger(__name__)


def pack_provider(link: ProviderLink, fields: list[str], offset: int) -> None:
    """
    Write one provider link into its slots.

    Args:
        link: Provider link to pack
        fields: Row being built, modified in place
        offset: Index of the provider's first slot
    """
    fields[offset] = link.raw_id or ""
    fields[offset + 1] = link.email or ""
    fields[offset + 2] = link.display_name or ""
    fields[offset + 3] = link.photo_url or ""


def pack_providers(links: Iterable[ProviderLink], fields: list[str]) -> None:
    """
    Write every link with a known provider id into the row.

    Args:
        links: Provider links of one account
        fields: Row being built, modified in place
    """
    for link in links:
        offset = PROVIDER_SLOT_OFFSETS.get(link.provider_id)
        if offset is None:
            logger.debug("Skipping provider without row slot", provider_id=link.provider_id)
            continue
        pack_provider(link, fields, offset)


def unpack_providers(fields: list[str]) -> list[ProviderLink]:
    """
    Read provider links back out of a full-width row.

    A provider block is present when its rawId slot is non-empty. Links are
    returned in slot order.

    Args:
        fields: Row padded to the full row width, empty strings for unset fields

    Returns:
        Provider links found in the row
    """
    links = []
    for provider_id, offset in PROVIDER_SLOT_OFFSETS.items():
        raw_id, email, display_name, photo_url = fields[offset : offset + PROVIDER_SLOT_COUNT]
        if not raw_id:
            continue
        links.append(
            ProviderLink(
                provider_id=provider_id,
                raw_id=raw_id,
                email=email or None,
                display_name=display_name or None,
                photo_url=photo_url or None,
            )
        )
    return links
