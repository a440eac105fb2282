"""Recompute cached per-account content counts from the media table."""

from __future__ import annotations

import argparse
from typing import Iterable

from storysite.app.quota_service import ReconcileResult, reconcile_content_counts
from storysite.core.logger import configure_logging
from storysite.storage.db import get_session_factory


def _format_report(results: list[ReconcileResult]) -> Iterable[str]:
    changed = [result for result in results if result.before != result.after]
    for result in results:
        marker = "updated" if result.before != result.after else "ok"
        yield f"{marker} account={result.account_id} email={result.email} before={result.before} after={result.after}"
    yield f"accounts={len(results)} updated={len(changed)}"


def main() -> None:
    parser = argparse.ArgumentParser(description="Recompute per-account content counts.")
    parser.add_argument(
        "--account-id",
        action="append",
        dest="account_ids",
        default=None,
        help="Limit to this account (repeatable). Defaults to every account.",
    )
    args = parser.parse_args()

    configure_logging()
    session = get_session_factory()()
    try:
        results = reconcile_content_counts(session, account_ids=args.account_ids)
    finally:
        session.close()

    for line in _format_report(results):
        print(line)


if __name__ == "__main__":
    main()
