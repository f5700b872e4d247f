from __future__ import annotations

import argparse
import asyncio
import json
from typing import Any, List, Optional

from .cache import utcnow
from .config import get_settings
from .records import CandidateRecord, Product, ReplacementCriteria, ValueRange
from .service import ExternalDataService
from .storage.base import open_storage
from .util.logging import get_logger, set_level


logger = get_logger(__name__)


def _emit(data: Any) -> None:
    print(json.dumps(data, ensure_ascii=False, indent=2))


def _dump(records: List[CandidateRecord]) -> List[dict]:
    return [r.to_dict() for r in records]


def cmd_init_db(args: argparse.Namespace) -> None:
    open_storage(get_settings()).init_db()
    logger.info("init_db_done")


def cmd_clear_cache(args: argparse.Namespace) -> None:
    removed = open_storage(get_settings()).clear_expired_cache(utcnow())
    logger.info("cache_cleared", extra={"count": removed})


async def _search(query: str, limit: int) -> List[CandidateRecord]:
    async with ExternalDataService.from_settings() as service:
        return await service.search_external_products(query, limit)


def cmd_search(args: argparse.Namespace) -> None:
    records = asyncio.run(_search(args.query, args.limit))
    _emit(_dump(records))


def criteria_from_args(args: argparse.Namespace) -> ReplacementCriteria:
    weight: Optional[ValueRange] = None
    if args.mw_min is not None or args.mw_max is not None:
        weight = ValueRange(min=args.mw_min, max=args.mw_max)
    return ReplacementCriteria(
        chemical_class=args.chemical_class,
        functional_groups=list(args.group or []),
        molecular_weight_range=weight,
        safety_profile=args.safety_profile,
        excluded_substances=list(args.exclude or []),
    )


async def _replace(product: Product, criteria: ReplacementCriteria, max_results: int) -> List[CandidateRecord]:
    async with ExternalDataService.from_settings() as service:
        return await service.find_replacements(product, criteria, max_results)


def cmd_replace(args: argparse.Namespace) -> None:
    product = Product(
        name=args.name or args.chemical_name or args.cas or "unnamed",
        chemical_name=args.chemical_name,
        cas_number=args.cas,
        category=args.category,
    )
    records = asyncio.run(_replace(product, criteria_from_args(args), args.max))
    _emit(_dump(records))


async def _details(source: str, source_id: str) -> Optional[CandidateRecord]:
    async with ExternalDataService.from_settings() as service:
        return await service.get_product_details(source_id, source)


def cmd_details(args: argparse.Namespace) -> None:
    record = asyncio.run(_details(args.source, args.source_id))
    _emit(record.to_dict() if record else None)


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="chem-aggregator")
    p.add_argument("--log-level", default=None, help="Override LOG_LEVEL")
    sub = p.add_subparsers(dest="cmd", required=True)

    s = sub.add_parser("init-db", help="Create tables and seed product sources")
    s.set_defaults(func=cmd_init_db)

    s = sub.add_parser("search", help="Search all external sources for a query")
    s.add_argument("query")
    s.add_argument("--limit", type=int, default=10)
    s.set_defaults(func=cmd_search)

    s = sub.add_parser("replace", help="Find scored replacement candidates for a product")
    s.add_argument("--name", default=None, help="Display name of the original product")
    s.add_argument("--chemical-name", default=None)
    s.add_argument("--cas", default=None, help="CAS registry number")
    s.add_argument("--category", default=None)
    s.add_argument("--class", dest="chemical_class", default=None, help="Desired chemical class")
    s.add_argument("--group", action="append", help="Functional group (repeatable)")
    s.add_argument("--mw-min", type=float, default=None)
    s.add_argument("--mw-max", type=float, default=None)
    s.add_argument("--safety-profile", default=None)
    s.add_argument("--exclude", action="append", help="Excluded substance (repeatable)")
    s.add_argument("--max", type=int, default=20)
    s.set_defaults(func=cmd_replace)

    s = sub.add_parser("details", help="Fetch full details for one source record")
    s.add_argument("source", help="pubchem | chemspider")
    s.add_argument("source_id")
    s.set_defaults(func=cmd_details)

    s = sub.add_parser("clear-cache", help="Delete expired cache entries")
    s.set_defaults(func=cmd_clear_cache)

    return p


def main(argv: Optional[List[str]] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    set_level(args.log_level or get_settings().log_level)
    args.func(args)


if __name__ == "__main__":
    main()
