import argparse
import json
import sys

from config import configure_logging, settings
from database import Storage, StorageError


def _print_themes(themes):
    for t in themes:
        fc = f"{t.forecast_heat:5.1f}" if t.forecast_heat is not None else "    -"
        conf = f"{t.confidence:.2f}" if t.confidence is not None else "   -"
        print(f"{t.week}  {t.decision:<5}  heat {t.heat:5.1f}  mom {t.momentum:+.2f}  fc {fc}  conf {conf}  {t.theme}")


def _load_rows(path: str):
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    if isinstance(data, dict):
        data = data.get("rows", [])
    return data


def main(argv=None):
    parser = argparse.ArgumentParser(prog="trend_radar")
    parser.add_argument("--db-url", default=settings.db_url)
    sub = parser.add_subparsers(dest="cmd", required=True)

    sub.add_parser("init-db")

    p_res = sub.add_parser("research")
    p_res.add_argument("--region", default=settings.default_region)
    p_res.add_argument("--keywords", nargs="*", default=[])
    p_res.add_argument("--days", type=int, default=settings.research_window_days)

    p_comp = sub.add_parser("compute")
    p_comp.add_argument("--region", default=settings.default_region)
    p_comp.add_argument("--week", default=None)
    p_comp.add_argument("--lookback-days", type=int, default=settings.lookback_days)

    p_top = sub.add_parser("top")
    p_top.add_argument("--week", default=None)
    p_top.add_argument("--limit", type=int, default=10)

    p_theme = sub.add_parser("theme")
    p_theme.add_argument("theme")
    p_theme.add_argument("--weeks", type=int, default=8)

    p_wl = sub.add_parser("watchlist")
    p_wl.add_argument("--region", default=settings.default_region)
    g = p_wl.add_mutually_exclusive_group()
    g.add_argument("--set", nargs="*", dest="set_keywords")
    g.add_argument("--add", nargs="+")
    g.add_argument("--remove", nargs="+")
    g.add_argument("--clear", action="store_true")

    p_ref = sub.add_parser("refresh")
    p_ref.add_argument("--region", default=settings.default_region)
    p_ref.add_argument("--days", type=int, default=settings.research_window_days)

    p_up = sub.add_parser("upload")
    p_up.add_argument("path", help="JSON file: a list of post rows or {'rows': [...]}")

    p_co = sub.add_parser("cooccur")
    p_co.add_argument("--left", default="items")
    p_co.add_argument("--right", default="colors")
    p_co.add_argument("--region", default=settings.default_region)
    p_co.add_argument("--week", default=None)

    p_cr = sub.add_parser("creators")
    p_cr.add_argument("entity")
    p_cr.add_argument("--region", default=settings.default_region)
    p_cr.add_argument("--week", default=None)
    p_cr.add_argument("--limit", type=int, default=20)

    p_brief = sub.add_parser("brief")
    p_brief.add_argument("--region", default=settings.default_region)
    p_brief.add_argument("--week", default=None)

    p_serve = sub.add_parser("serve")
    p_serve.add_argument("--host", default="127.0.0.1")
    p_serve.add_argument("--port", type=int, default=8000)

    args = parser.parse_args(argv)
    configure_logging()

    if args.cmd == "serve":
        from app import run_server

        run_server(host=args.host, port=args.port)
        return 0

    storage = Storage(args.db_url)
    storage.create_db_and_tables()

    try:
        if args.cmd == "init-db":
            print("DB initialized.")

        elif args.cmd == "research":
            from engine.research import run_research

            result = run_research(storage, region=args.region, keywords=args.keywords, window_days=args.days)
            print(f"Source counts: {result['sourceCounts']}")
            for line in result["rising"]:
                print(line)

        elif args.cmd == "compute":
            from engine.themes import compute_themes

            themes = compute_themes(storage, region=args.region, week=args.week, lookback_days=args.lookback_days)
            print(f"Scored {len(themes)} themes.")
            _print_themes(themes[:10])

        elif args.cmd == "top":
            from engine.themes import get_top_themes

            _print_themes(get_top_themes(storage, week=args.week, limit=args.limit))

        elif args.cmd == "theme":
            from engine.themes import get_theme_one

            for row in get_theme_one(storage, args.theme, weeks=args.weeks):
                print(f"{row['date']}  {row['source']:<7} {row['value']:g}")

        elif args.cmd == "watchlist":
            from engine import watchlist

            if args.set_keywords is not None:
                kws = watchlist.set_keywords(storage, args.region, args.set_keywords)
            elif args.add:
                kws = watchlist.add_keywords(storage, args.region, args.add)
            elif args.remove:
                kws = watchlist.remove_keywords(storage, args.region, args.remove)
            elif args.clear:
                kws = watchlist.clear_keywords(storage, args.region)
            else:
                kws = watchlist.get_keywords(storage, args.region)
            print(f"{args.region}: {', '.join(kws) if kws else '(empty)'}")

        elif args.cmd == "refresh":
            from engine.research import refresh_research

            themes = refresh_research(storage, region=args.region, window_days=args.days)
            print(f"Refreshed {args.region}: {len(themes)} top themes.")
            _print_themes(themes)

        elif args.cmd == "upload":
            from engine.uploads import score_uploaded_posts

            rows = _load_rows(args.path)
            scored = score_uploaded_posts(storage, rows)
            print(f"Uploaded {len(rows)} posts, scored {len(scored)} entity rows.")

        elif args.cmd == "cooccur":
            from engine.uploads import get_cooccurrence

            for row in get_cooccurrence(storage, args.left, args.right, args.region, args.week):
                print(f"{row['count']:>4}  {row['left']} + {row['right']}")

        elif args.cmd == "creators":
            from engine.uploads import get_top_creators

            for c in get_top_creators(storage, args.entity, args.region, args.week, args.limit):
                print(f"{c['author']:<24} posts {c['posts']:>3}  eng_rate {c['avg_eng_rate']:.4f}")

        elif args.cmd == "brief":
            from engine.summary import build_weekly_brief

            brief = build_weekly_brief(storage, args.region, args.week)
            print(f"{brief['region']} {brief['week']}")
            print(brief["content"])

    except StorageError as e:
        print(f"Storage failure: {e}", file=sys.stderr)
        return 1
    finally:
        storage.dispose()

    return 0


if __name__ == "__main__":
    sys.exit(main())
