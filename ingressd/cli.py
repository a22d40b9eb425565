from __future__ import annotations

import argparse
import json
import sys

import requests


def _print(obj) -> None:
    print(json.dumps(obj, indent=2, ensure_ascii=False))


def main(argv: list[str] | None = None) -> int:
    p = argparse.ArgumentParser(description="ingressd CLI")
    p.add_argument("--api", default="http://localhost:8081", help="ingressd base URL")
    p.add_argument("--timeout", type=float, default=10.0, help="Request timeout in seconds")
    sub = p.add_subparsers(dest="cmd", required=True)

    sub.add_parser("healthz", help="Check daemon liveness")
    sub.add_parser("status", help="Show the last reconciliation cycle")

    s_ev = sub.add_parser("events", help="Show recent events")
    s_ev.add_argument("--limit", type=int, default=20)

    args = p.parse_args(argv)

    base = args.api.rstrip("/")

    try:
        if args.cmd == "healthz":
            r = requests.get(f"{base}/healthz", timeout=args.timeout)
            print(r.text)
            return 0 if r.ok else 1

        if args.cmd == "status":
            r = requests.get(f"{base}/status", timeout=args.timeout)
            _print(r.json())
            return 0 if r.ok else 1

        if args.cmd == "events":
            r = requests.get(f"{base}/events", params={"limit": args.limit}, timeout=args.timeout)
            _print(r.json())
            return 0 if r.ok else 1
    except requests.RequestException as e:
        print(f"error: {e}", file=sys.stderr)
        return 1

    return 2


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
