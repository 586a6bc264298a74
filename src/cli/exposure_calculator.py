#!/usr/bin/env python3
"""Exposure Calculator CLI - SA-CCR, PFE, VaR, Grid/Schedule IM and ISDA SIMM.

Usage:
    python exposure_calculator.py saccr --input netting_set.yaml
    python exposure_calculator.py var --input portfolio.yaml --market-data data/market

Examples:
    # SA-CCR EAD as of a fixed date
    python exposure_calculator.py saccr --input netting_set.yaml --valuation-date 2024-01-15

    # VaR on synthetic prices for positions without supplied history
    python exposure_calculator.py var --input portfolio.json --synthetic-seed 7

    # ISDA SIMM with debug logging
    python exposure_calculator.py simm --input sensitivities.yaml --log-level DEBUG
"""

from __future__ import annotations

import argparse
import dataclasses
import logging
import sys
from datetime import date
from pathlib import Path
from typing import Any

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser."""
    from src.core.services.exposure_calculation_service import CalculationType

    parser = argparse.ArgumentParser(
        description="Calculate counterparty exposure, VaR and initial margin",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )

    parser.add_argument(
        "calculation",
        type=str,
        choices=[t.value for t in CalculationType],
        help="Engine to run",
    )

    parser.add_argument(
        "--input", "-i",
        type=str,
        required=True,
        help="Path to YAML or JSON input document",
    )

    parser.add_argument(
        "--valuation-date", "-d",
        type=str,
        default=None,
        help="Valuation date YYYY-MM-DD (default: document value, else today)",
    )

    source = parser.add_mutually_exclusive_group()
    source.add_argument(
        "--market-data",
        type=str,
        default=None,
        help="Directory of <identifier>.csv price files for VaR",
    )
    source.add_argument(
        "--synthetic-seed",
        type=int,
        default=None,
        help="Generate missing VaR prices as a seeded random walk",
    )

    parser.add_argument(
        "--output-dir", "-o",
        type=str,
        default="artifacts/exposure",
        help="Output directory for results (default: artifacts/exposure)",
    )

    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="WARNING",
        help="Logging level (default: WARNING)",
    )

    return parser


def configure_logging(level: str) -> None:
    """Configure root logging for a CLI run."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.WARNING),
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
        force=True,
    )


def print_summary(calculation: str, result: dict[str, Any]) -> None:
    """Print the headline numbers of a result."""
    print("\n" + "=" * 50)
    if calculation == "saccr":
        print("SA-CCR EXPOSURE AT DEFAULT")
        print("=" * 50)
        print(f"  EAD:              {result['ead']:>18,.2f}")
        print(f"  Replacement cost: {result['replacement_cost']['value']:>18,.2f}")
        print(f"  PFE:              {result['pfe']:>18,.2f}")
        print(f"  Add-on:           {result['add_on']:>18,.2f}")
        print(f"  Multiplier:       {result['multiplier']:>18.4f}")
        for asset_class, add_on in result["per_asset_class_add_on"].items():
            print(f"    {asset_class:<16} {add_on:>18,.2f}")
    elif calculation == "pfe":
        print("POTENTIAL FUTURE EXPOSURE")
        print("=" * 50)
        print(f"  PFE:               {result['pfe']:>18,.2f}")
        print(f"  Expected exposure: {result['expected_exposure']:>18,.2f}")
        print(f"  Stressed PFE:      {result['stressed_pfe']:>18,.2f}")
        print(f"  Net add-on:        {result['add_on']:>18,.2f}")
        print(f"  Multiplier:        {result['multiplier']:>18.4f}")
    elif calculation == "var":
        params = result["parameters"]
        print(f"VALUE AT RISK ({params['confidence_level']}, {params['time_horizon']})")
        print("=" * 50)
        print(f"  VaR:                {result['var']:>18,.2f} ({result['var_percentage']:.2f}%)")
        print(f"  Expected shortfall: {result['expected_shortfall']:>18,.2f}")
        print(f"  Diversification:    {result['diversification_benefit']:>18,.2f}")
        print(f"  Observations:       {result['observations']:>18d}")
        print("-" * 50)
        for name, pnl in result["stress_scenarios"].items():
            print(f"  {name:<30} {pnl:>17,.2f}")
    elif calculation == "grid":
        print("GRID/SCHEDULE INITIAL MARGIN")
        print("=" * 50)
        print(f"  Gross IM:         {result['initial_margin']:>18,.2f}")
        print(f"  Net IM:           {result['net_initial_margin']:>18,.2f}")
        print(f"  Net/gross factor: {result['net_gross_ratio']:>18.4f}")
    else:
        print("ISDA SIMM INITIAL MARGIN")
        print("=" * 50)
        print(f"  Initial margin:   {result['initial_margin']:>18,.2f}")
        print(f"  Net IM:           {result['net_initial_margin']:>18,.2f}")
        print(f"  Diversification:  {result['diversification_benefit']:>18,.2f}")
        for risk_class, margin in result["risk_class_margins"].items():
            print(f"    {risk_class:<22} {margin:>18,.2f}")


def main(args: list[str] | None = None) -> int:
    """Main entry point.

    Args:
        args: Command line arguments

    Returns:
        Exit code (0 for success)
    """
    parser = create_parser()
    parsed = parser.parse_args(args)
    configure_logging(parsed.log_level)

    input_path = Path(parsed.input)
    if not input_path.exists():
        print(f"Error: Input file not found: {parsed.input}", file=sys.stderr)
        return 1

    valuation_date = None
    if parsed.valuation_date:
        try:
            valuation_date = date.fromisoformat(parsed.valuation_date)
        except ValueError:
            print(f"Error: Invalid valuation date: {parsed.valuation_date}", file=sys.stderr)
            return 1

    # Lazy imports
    from src.adapters.csv_market_data_adapter import CsvMarketDataAdapter
    from src.adapters.filesystem_adapter import FileSystemAdapter
    from src.adapters.synthetic_market_data_adapter import SyntheticMarketDataAdapter
    from src.core.domain.errors import RiskEngineError
    from src.core.services.exposure_calculation_service import (
        CalculationType,
        create_exposure_calculation_service,
    )

    fs = FileSystemAdapter()
    calculation_type = CalculationType(parsed.calculation)

    print(f"Loading {calculation_type.value} input from {parsed.input}...")
    try:
        request = fs.load_calculation_input(input_path, calculation_type)
    except (RiskEngineError, ValueError) as e:
        print(f"Error loading input: {e}", file=sys.stderr)
        return 1

    if valuation_date is not None:
        request = dataclasses.replace(request, valuation_date=valuation_date)

    market_data_port = None
    if parsed.market_data:
        market_data_port = CsvMarketDataAdapter(parsed.market_data, end_date=valuation_date)
    elif parsed.synthetic_seed is not None:
        market_data_port = SyntheticMarketDataAdapter(
            seed=parsed.synthetic_seed, end_date=valuation_date
        )

    service = create_exposure_calculation_service(market_data_port)
    try:
        response = service.calculate(request)
    except RiskEngineError as e:
        print(f"Error calculating {calculation_type.value}: {e}", file=sys.stderr)
        return 1

    result = response.result.to_dict()
    print_summary(calculation_type.value, result)

    for warning in response.warnings:
        print(f"Warning: {warning}", file=sys.stderr)

    results_file = fs.save_result(parsed.output_dir, response)
    print(f"\nResults saved to: {results_file}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
