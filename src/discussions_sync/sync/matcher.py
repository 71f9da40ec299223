"""Slug-keyed matching of local documents against remote records.

Each input is indexed once by slug, so matching is linear in the number of
documents plus records.  Inputs without a slug take no part in syncing;
when two inputs on the same side share a slug, the first one wins and the
duplicate is reported.  Output lists keep input order.
"""

from __future__ import annotations

import logging

from discussions_sync.errors import MalformedDocument
from discussions_sync.sync.models import (
    LocalDocument,
    MatchResult,
    RemoteRecord,
    SyncPair,
    slug_of,
)

logger = logging.getLogger(__name__)


def _index_local(
    local_docs: list[LocalDocument], warnings: list[str]
) -> dict[str, LocalDocument]:
    index: dict[str, LocalDocument] = {}
    for doc in local_docs:
        slug = doc.slug
        if slug is None:
            logger.debug("No slug in %s; not synced", doc.path)
            continue
        if slug in index:
            warnings.append(
                f"duplicate slug '{slug}' in {doc.path}; "
                f"keeping {index[slug].path}"
            )
            continue
        index[slug] = doc
    return index


def _index_remote(
    records: list[RemoteRecord], warnings: list[str]
) -> dict[str, RemoteRecord]:
    index: dict[str, RemoteRecord] = {}
    for record in records:
        try:
            metadata, _ = record.parse_body()
        except MalformedDocument as exc:
            warnings.append(f"skipped {exc}")
            continue
        slug = slug_of(metadata)
        if slug is None:
            logger.debug("No slug in discussion #%d; not synced", record.number)
            continue
        if slug in index:
            warnings.append(
                f"duplicate slug '{slug}' in discussion #{record.number}; "
                f"keeping #{index[slug].number}"
            )
            continue
        index[slug] = record
    return index


def match(
    local_docs: list[LocalDocument], remote_records: list[RemoteRecord]
) -> MatchResult:
    """Partition slugged inputs into new-local, new-remote and matched pairs.

    Every slugged local document lands in exactly one of ``new_local`` or
    ``paired``; every slugged, parseable record in exactly one of
    ``new_remote`` or ``paired``.
    """
    warnings: list[str] = []
    local_index = _index_local(local_docs, warnings)
    remote_index = _index_remote(remote_records, warnings)

    new_local: list[LocalDocument] = []
    paired: list[SyncPair] = []
    for slug, doc in local_index.items():
        record = remote_index.get(slug)
        if record is None:
            new_local.append(doc)
        else:
            paired.append(SyncPair(slug=slug, local=doc, remote=record))

    new_remote = [
        record for slug, record in remote_index.items() if slug not in local_index
    ]

    for warning in warnings:
        logger.warning(warning)

    return MatchResult(
        new_local=new_local,
        new_remote=new_remote,
        paired=paired,
        warnings=warnings,
    )
