"""Command-line interface for the signal backtest engine.

Usage:
    signal-backtest backtest --instrument BTCUSDT --data data/BTCUSDT.json
    signal-backtest backtest --instrument BTCUSDT            # fetch from services
    signal-backtest batch --data-dir data/ --workers 4
    signal-backtest instruments
    signal-backtest health
"""

import argparse
import json
import sys
from pathlib import Path

from dotenv import load_dotenv

from runner.settings import RunnerSettings
from signal_backtest.config import BacktestConfig
from signal_backtest.utils import format_metrics_table, setup_logging

# CLI option -> BacktestConfig field
CONFIG_OPTIONS = {
    "balance": "initial_balance",
    "commission": "commission_rate",
    "slippage": "slippage_rate",
    "max_position": "max_position_size",
    "stop_loss": "stop_loss_percent",
    "take_profit": "take_profit_percent",
    "min_confidence": "min_entry_confidence",
}


def _load_json(path: str):
    with open(path) as f:
        return json.load(f)


def _backtest_config(args, settings: RunnerSettings) -> BacktestConfig:
    values = settings.backtest.model_dump()
    for option, field_name in CONFIG_OPTIONS.items():
        value = getattr(args, option, None)
        if value is not None:
            values[field_name] = value
    return BacktestConfig.resolve(values)


def cmd_backtest(args, settings: RunnerSettings):
    from runner.report_generator import ReportGenerator
    from signal_backtest.backtest import run_backtest

    config = _backtest_config(args, settings)

    if args.data:
        payload = _load_json(args.data)
        prediction = _load_json(args.prediction) if args.prediction else None
    else:
        from runner.service_client import ServiceClient

        client = ServiceClient(settings)
        payload = client.get_historical_data(args.instrument)
        prediction = client.get_ml_prediction(args.instrument)

    report = run_backtest(args.instrument, payload, payload.get("strategies"),
                          ml_prediction=prediction, config=config)

    rg = ReportGenerator(report)
    rg.print_console_summary()
    if args.json:
        print(f"Report saved to: {rg.export_json(args.json)}")
    if args.trades:
        print(f"Trade log saved to: {rg.export_trade_log(args.trades)}")


def cmd_batch(args, settings: RunnerSettings):
    from runner.batch import BatchRunner

    if args.data_dir:
        from runner.file_provider import FileDataProvider
        provider = FileDataProvider(args.data_dir)
    else:
        from runner.service_client import ServiceClient
        provider = ServiceClient(settings)

    runner = BatchRunner(
        provider,
        config=_backtest_config(args, settings),
        max_workers=args.workers or settings.max_workers,
    )
    outcomes = runner.run_all(args.instruments)

    summary = BatchRunner.summarize(outcomes)
    columns = [c for c in ("instrument", "total_return_percent", "total_trades",
                           "win_rate_percent", "max_drawdown_percent", "sharpe_ratio", "error")
               if c in summary.columns]
    if not summary.empty:
        print(summary[columns].to_string())
    print(format_metrics_table(BatchRunner.portfolio_summary(outcomes), title="Batch Summary"))

    if args.json:
        with open(args.json, "w") as f:
            json.dump({k: o.to_dict() for k, o in outcomes.items()}, f, indent=2, default=str)
        print(f"Results saved to: {args.json}")


def cmd_instruments(args, settings: RunnerSettings):
    from runner.service_client import ServiceClient

    instruments = ServiceClient(settings).get_available_instruments()
    if not instruments:
        print("No instruments available.")
        return
    for instrument in instruments:
        print(f"  {instrument}")


def cmd_health(args, settings: RunnerSettings):
    from runner.service_client import ServiceClient

    health = ServiceClient(settings).check_services_health()
    for name, status in health.items():
        line = f"  {name:<6} {status['status']}"
        if status["error"]:
            line += f" ({status['error']})"
        print(line)
    if any(s["status"] != "healthy" for s in health.values()):
        sys.exit(1)


def _add_config_options(parser):
    parser.add_argument("--balance", type=float, help="Initial balance")
    parser.add_argument("--commission", type=float, help="Commission rate")
    parser.add_argument("--slippage", type=float, help="Slippage rate")
    parser.add_argument("--max-position", type=float, help="Max position size (fraction of balance)")
    parser.add_argument("--stop-loss", type=float, help="Stop-loss (fraction of entry)")
    parser.add_argument("--take-profit", type=float, help="Take-profit (fraction of entry)")
    parser.add_argument("--min-confidence", type=float, help="Minimum confidence to open")


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Signal Backtest Engine CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--config", help="Path to TOML settings file")
    parser.add_argument("--log-level", help="Logging level (default from settings)")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # backtest command
    bt = subparsers.add_parser("backtest", help="Run a backtest for one instrument")
    bt.add_argument("--instrument", "-i", required=True, help="Instrument identifier")
    bt.add_argument("--data", "-d", help="JSON file with history and strategies "
                                         "(default: fetch from the core service)")
    bt.add_argument("--prediction", "-p", help="JSON file with the ML prediction")
    bt.add_argument("--json", help="Write the full report to this JSON file")
    bt.add_argument("--trades", help="Write the trade log to this CSV file")
    _add_config_options(bt)

    # batch command
    ba = subparsers.add_parser("batch", help="Run backtests for many instruments")
    ba.add_argument("--data-dir", help="Directory of JSON payloads (default: services)")
    ba.add_argument("--instruments", nargs="+", help="Instruments to run (default: all)")
    ba.add_argument("--workers", type=int, help="Concurrent runs")
    ba.add_argument("--json", help="Write all results to this JSON file")
    _add_config_options(ba)

    subparsers.add_parser("instruments", help="List instruments available upstream")
    subparsers.add_parser("health", help="Check upstream service health")

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    # Service URLs may come from a local .env file
    env_file = Path.cwd() / ".env"
    if env_file.exists():
        load_dotenv(env_file)

    settings = RunnerSettings.load(args.config)
    setup_logging(args.log_level or settings.log_level)

    commands = {
        "backtest": cmd_backtest,
        "batch": cmd_batch,
        "instruments": cmd_instruments,
        "health": cmd_health,
    }

    commands[args.command](args, settings)


if __name__ == "__main__":
    main()
