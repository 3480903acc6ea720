# /scripts/catalog_cli.py
# Offline CLI over a PUPHAX CSV directory (no server needed):
#   search   free-text quick search (capped)
#   query    multi-criteria search with filters, sort and paging
#   filters  filter vocabularies (manufacturers, ATC codes, forms, ...)
#   stats    load summary and skipped-row sample
#
# Usage:
#   python scripts/catalog_cli.py --data-dir data/puphax search aspirin
#   python scripts/catalog_cli.py query --term aspirin --atc N02BA01 --prescription-required false --page 0 --size 10
#   python scripts/catalog_cli.py filters --section manufacturers

from __future__ import annotations
import argparse, json, logging, os, sys
from dataclasses import asdict
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import ValidationError

from app.application.search_use_case import SearchCatalogUseCase
from app.application.snapshot import SEARCH_RESULT_LIMIT, SnapshotHolder, build_snapshot
from app.domain.errors import CatalogError
from app.domain.models import FilterCriteria
from app.domain.rules import CatalogRules
from app.presentation.schemas import DrugItem, DrugSearchResponse


def print_step(title):
    print(f"\n=== {title} ===")

def pretty(o, indent=2):
    return json.dumps(o, indent=indent, ensure_ascii=False, default=str)

def _csv(value: Optional[str]) -> Optional[List[str]]:
    if not value:
        return None
    return [v.strip() for v in value.split(",") if v.strip()]

def _bool(value: Optional[str]) -> Optional[bool]:
    if value is None:
        return None
    v = value.strip().lower()
    if v in ("1", "true", "yes", "y"):
        return True
    if v in ("0", "false", "no", "n"):
        return False
    raise argparse.ArgumentTypeError(f"expected true/false, got {value!r}")


def open_catalog(data_dir: str) -> SearchCatalogUseCase:
    holder = SnapshotHolder()
    holder.publish(build_snapshot(data_dir, rules=CatalogRules.from_yaml()))
    return SearchCatalogUseCase(holder)


# -------------------------------
# Subcommands
# -------------------------------
def cmd_search(uc: SearchCatalogUseCase, args) -> int:
    print_step(f"SEARCH {args.term!r}")
    views = uc.quick_search(args.term, limit=args.limit)
    for v in views:
        r = v.record
        print(f"{r.id:>10}  {r.name:<40} {r.strength_text:<15} {v.manufacturer}")
    print(f"\n{len(views)} result(s)")
    return 0

def cmd_query(uc: SearchCatalogUseCase, args) -> int:
    try:
        criteria = FilterCriteria(
            search_term=args.term,
            atc_codes=_csv(args.atc),
            manufacturers=_csv(args.manufacturer),
            product_forms=_csv(args.form),
            administration_methods=_csv(args.route),
            ttt_codes=_csv(args.ttt),
            prescription_required=args.prescription_required,
            reimbursable=args.reimbursable,
            in_stock=args.in_stock,
            prescription_types=_csv(args.prescription_type),
            min_strength=args.min_strength,
            max_strength=args.max_strength,
            strength_units=_csv(args.strength_unit),
            brands=_csv(args.brand),
            laterality=_csv(args.laterality),
            special_marker=args.special,
            currently_valid=args.currently_valid,
            valid_from_date=args.valid_from,
            valid_to_date=args.valid_to,
            page=args.page,
            size=args.size,
            sort_by=args.sort_by,
            sort_direction=args.sort_direction,
        )
    except ValidationError as e:
        print(pretty(e.errors(include_url=False, include_context=False)), file=sys.stderr)
        return 2

    print_step(f"QUERY ({criteria.active_filter_count()} filter(s))")
    page = uc.search_products(criteria)
    if args.json:
        print(DrugSearchResponse.from_page(page).model_dump_json(indent=2))
        return 0
    for v in page.items:
        item = DrugItem.from_view(v)
        print(f"{item.id:>10}  {item.name:<40} {item.atc_code or '-':<8} {item.manufacturer}")
    print(
        f"\npage {page.page + 1}/{max(page.total_pages, 1)}  total={page.total_elements}"
        f"  next={page.has_next}  prev={page.has_previous}"
    )
    if page.ignored_filters:
        print(f"ignored filters: {', '.join(page.ignored_filters)}")
    return 0

def cmd_filters(uc: SearchCatalogUseCase, args) -> int:
    opts = uc.filter_options().model_dump(by_alias=True, mode="json")
    if args.section:
        if args.section not in opts:
            print(f"unknown section {args.section!r}; choose from: {', '.join(opts)}", file=sys.stderr)
            return 2
        opts = {args.section: opts[args.section]}
    print_step("FILTER OPTIONS")
    print(pretty(opts))
    return 0

def cmd_stats(uc: SearchCatalogUseCase, args) -> int:
    snap = uc.holder.require()
    print_step("CATALOG STATS")
    print(pretty(snap.stats()))
    if snap.report.skip_counts:
        print_step("SKIPPED ROWS")
        print(pretty(dict(snap.report.skip_counts)))
        for s in snap.report.skipped[: args.sample]:
            print(pretty(asdict(s), indent=None))
    return 0


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="Query a PUPHAX CSV catalog offline")
    ap.add_argument("--data-dir", default=os.getenv("CATALOG_DATA_DIR", "data/puphax"),
                    help="directory holding TERMEK.csv, BRAND.csv, ATCKONYV.csv, CEGEK.csv")
    ap.add_argument("-v", "--verbose", action="store_true", help="debug logging (per-row skips)")
    sub = ap.add_subparsers(dest="command", required=True)

    s = sub.add_parser("search", help="free-text quick search")
    s.add_argument("term")
    s.add_argument("--limit", type=int, default=SEARCH_RESULT_LIMIT)
    s.set_defaults(func=cmd_search)

    q = sub.add_parser("query", help="multi-criteria search")
    q.add_argument("--term")
    q.add_argument("--atc", help="comma separated ATC codes")
    q.add_argument("--manufacturer", help="comma separated manufacturer names")
    q.add_argument("--form", help="comma separated pharmaceutical forms")
    q.add_argument("--route", help="comma separated administration methods")
    q.add_argument("--ttt", help="comma separated TTT codes")
    q.add_argument("--prescription-type", help="comma separated prescription codes")
    q.add_argument("--prescription-required", type=_bool)
    q.add_argument("--reimbursable", type=_bool)
    q.add_argument("--in-stock", type=_bool)
    q.add_argument("--special", type=_bool)
    q.add_argument("--currently-valid", type=_bool)
    q.add_argument("--min-strength", type=float)
    q.add_argument("--max-strength", type=float)
    q.add_argument("--strength-unit", help="comma separated strength units, e.g. mg,ml")
    q.add_argument("--brand", help="comma separated brand names")
    q.add_argument("--laterality", help="comma separated laterality codes")
    q.add_argument("--valid-from")
    q.add_argument("--valid-to")
    q.add_argument("--page", type=int, default=0)
    q.add_argument("--size", type=int, default=20)
    q.add_argument("--sort-by", default="name")
    q.add_argument("--sort-direction", default="ASC")
    q.add_argument("--json", action="store_true", help="print the API-shaped JSON response")
    q.set_defaults(func=cmd_query)

    f = sub.add_parser("filters", help="filter vocabularies")
    f.add_argument("--section", help="print only one section, e.g. manufacturers")
    f.set_defaults(func=cmd_filters)

    st = sub.add_parser("stats", help="load summary")
    st.add_argument("--sample", type=int, default=10, help="skipped rows to print")
    st.set_defaults(func=cmd_stats)
    return ap


def main(argv: Optional[List[str]] = None) -> int:
    load_dotenv()
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    try:
        uc = open_catalog(args.data_dir)
        return args.func(uc, args)
    except CatalogError as e:
        print(f"[error] {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
