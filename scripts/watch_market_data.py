#!/usr/bin/env python3
"""Watch a running market data service: add symbols, then poll quotes and status."""
import argparse
import sys
import time

import requests

API = "http://localhost:8202/api/v2"


def watch_symbols(symbols: list[str]) -> int:
    resp = requests.post(f"{API}/market-data/watch", json={"symbols": symbols}, timeout=10)
    resp.raise_for_status()
    return resp.json()["watched_symbols"]


def get_status() -> dict:
    resp = requests.get(f"{API}/market-data/status", timeout=10)
    resp.raise_for_status()
    return resp.json()


def get_quotes(symbols: list[str]) -> dict:
    resp = requests.get(f"{API}/quotes", params={"symbols": ",".join(symbols)}, timeout=30)
    resp.raise_for_status()
    return resp.json()


def print_status(status: dict):
    stats = status["stats"]
    caching = status["caching"]
    print(f"\n  market {status['market']} {status['market_state']}"
          f"  interval {status['scheduling']['current_interval_seconds']}s"
          f"  watched {status['watched_symbols']}")
    print(f"  cache  memory {caching['memory_entries']}/{caching['memory_max_entries']}"
          f"  shared {'on' if caching['shared_enabled'] else 'off'}")
    print(f"  fetch  {stats['successful_fetches']} ok / {stats['failed_fetches']} failed"
          f"  avg {stats['average_fetch_duration_ms']}ms")
    for name, p in status["providers"].items():
        rl = p.get("rate_limit") or {}
        flag = "ok " if p["healthy"] else "DEG"
        print(f"    [{flag}] {name:<13} failures={p['consecutive_failures']:<3}"
              f" window={rl.get('requests_in_window', 0)}/{rl.get('max_requests', '-')}"
              f"  {p.get('last_error') or ''}")


def print_quotes(payload: dict):
    for sym, q in sorted(payload["quotes"].items()):
        print(f"  {sym:<8} {q['price']:>10.2f}  {q['change_percent']:+6.2f}%  ({q['source']})")
    for sym in payload["missing"]:
        print(f"  {sym:<8} {'—':>10}  no data")


def main():
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("symbols", nargs="*", default=["AAPL", "MSFT", "SPY"])
    parser.add_argument("--every", type=float, default=15, help="poll interval in seconds")
    parser.add_argument("--rounds", type=int, default=0, help="0 = poll until interrupted")
    args = parser.parse_args()

    symbols = [s.upper() for s in args.symbols]
    print(f"Watching {symbols} (service now tracks {watch_symbols(symbols)} symbols)")

    n = 0
    try:
        while args.rounds == 0 or n < args.rounds:
            n += 1
            print(f"\n{'='*60}\n  round {n}\n{'='*60}")
            print_quotes(get_quotes(symbols))
            print_status(get_status())
            time.sleep(args.every)
    except KeyboardInterrupt:
        pass
    except requests.RequestException as e:
        print(f"Service unreachable: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
