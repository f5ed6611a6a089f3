"""
Engine performance report from the command line.

Usage::

    python -m vantage.scripts.engine_report
    python -m vantage.scripts.engine_report --include-failed
    python -m vantage.scripts.engine_report --variants 5
    python -m vantage.scripts.engine_report --review V6.0 --horizon swing
    python -m vantage.scripts.engine_report --promote AAPL --horizon swing
    python -m vantage.scripts.engine_report --demote AAPL --horizon swing

"""

import argparse
import asyncio
import logging
import sys
from typing import List

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s  %(name)-30s  %(levelname)-7s  %(message)s",
)
logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------

def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="VANTAGE - engine performance report")
    parser.add_argument("--include-failed", action="store_true", default=False,
                        help="Show engines whose data failed to load as zero rows")
    parser.add_argument("--variants", type=int, default=0,
                        help="Also print the top N ranked filter variants")
    parser.add_argument("--horizon", type=str, default="swing",
                        help="Horizon for --review/--promote/--demote (day, swing, invest)")
    parser.add_argument("--review", type=str, default=None, metavar="ENGINE_VERSION",
                        help="Print promotion candidates and red flags for an engine version")
    parser.add_argument("--promote", type=str, default=None, metavar="TICKER",
                        help="Add a ticker to the horizon's universe")
    parser.add_argument("--compare", action="store_true", default=False,
                        help="Print crypto shadow vs. live stock performance")
    parser.add_argument("--demote", type=str, default=None, metavar="TICKER",
                        help="Remove a ticker from the horizon's universe")
    return parser.parse_args()


# ---------------------------------------------------------------------------
# Output
# ---------------------------------------------------------------------------

def _print_engines(metrics: List) -> None:
    header = f"  {'ENGINE':<28} {'MODE':<8} {'TRADES':>6} {'WIN%':>6} {'AVG R':>7} {'PNL':>12} {'DD%':>7} {'RET%':>7}"
    print(header)
    print("  " + "-" * (len(header) - 2))
    for m in metrics:
        name = f"{m.identity.engine_key}/{m.identity.label}"[:28]
        dd = f"{m.max_drawdown_pct:.1f}" if m.drawdown_reliable else "n/a"
        print(
            f"  {name:<28} {m.identity.run_mode.value:<8} {m.total_trades:>6} "
            f"{m.win_rate * 100:>5.1f}% {m.avg_r:>7.2f} {m.total_pnl:>12,.2f} "
            f"{dd:>7} {m.net_return_pct:>6.1f}%"
        )


def _print_stats(title: str, rows: List) -> None:
    print(f"\n  {title} ({len(rows)})")
    for s in rows:
        conf = f"{s.avg_confidence_14d:.2f}" if s.avg_confidence_14d is not None else "-"
        print(
            f"    {s.ticker:<8} trades={s.trades:<4} win={s.win_rate * 100:5.1f}% "
            f"exp={s.expectancy_r:+.3f}R dd={s.max_drawdown_pct:5.1f}% conf={conf}"
        )


def _print_comparison(comparison) -> None:
    print(f"\n  {'':<10} {'RET%':>8} {'DD%':>7} {'SHARPE':>7} {'WIN%':>6} {'PF':>6} {'TRADES':>6}")
    for name, m in (("Crypto", comparison.crypto_metrics), ("Stocks", comparison.stock_metrics)):
        print(
            f"  {name:<10} {m.total_return_pct:>+7.2f}% {m.max_drawdown_pct:>6.1f}% {m.sharpe:>7.2f} "
            f"{m.win_rate * 100:>5.1f}% {m.profit_factor:>6.2f} {m.trades:>6}"
        )
    print(f"  Daily return correlation: {comparison.correlation:+.3f}")


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------

async def _run(args: argparse.Namespace) -> int:
    from vantage.config.metrics_config import ScoringWeights
    from vantage.engine.service import EngineMetricsService
    from vantage.storage.database import close_database_async, init_db_async
    from vantage.storage.repositories import SqlUniverseStore
    from vantage.universe.manager import TickerStatsLoader, UniverseManager
    from vantage.variants.scoring import top_variants
    from vantage.variants.service import VariantService

    await init_db_async()
    try:
        manager = UniverseManager(SqlUniverseStore(), TickerStatsLoader())

        if args.promote or args.demote:
            ticker = args.promote or args.demote
            if args.promote:
                changed = await manager.promote(ticker, args.horizon)
            else:
                changed = await manager.demote(ticker, args.horizon)
            action = "promote" if args.promote else "demote"
            print(f"  {action} {ticker.upper()} ({args.horizon}): {'done' if changed else 'no change'}")
            return 0

        if args.review:
            review = await manager.review(args.review, args.horizon)
            print(f"\n  Universe review: {args.review} / {review.horizon.value}")
            _print_stats("Promotion candidates", review.candidates)
            _print_stats("Red flags", review.red_flags)
            return 0

        service = EngineMetricsService()
        if args.compare:
            _print_comparison(await service.performance_comparison())
            return 0

        metrics = await service.all_metrics(include_failed=args.include_failed)
        print()
        _print_engines(metrics)

        totals = await service.journal_totals()
        print(
            f"\n  Live journal: equity {totals.current_equity:,.2f} "
            f"(realized {totals.since_inception_realized_pnl:+,.2f}, "
            f"open {totals.current_unrealized_pnl:+,.2f}, "
            f"return {totals.net_return_pct:+.2f}%)"
        )

        if args.variants > 0:
            ranked = await VariantService(weights=ScoringWeights.from_settings()).ranked_variants()
            print(f"\n  Top {args.variants} filter variants")
            for r in top_variants(ranked, args.variants):
                print(f"    #{r.rank:<3} {r.filter_variant:<24} {r.engine_version:<10} score={r.score:.4f}")
        return 0
    finally:
        await close_database_async()


def main() -> None:
    args = _parse_args()
    try:
        code = asyncio.run(_run(args))
    except Exception as e:
        logger.error(f"Report failed: {e}")
        code = 1
    sys.exit(code)


if __name__ == "__main__":
    main()
