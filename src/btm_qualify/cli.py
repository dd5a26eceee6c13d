"""
Bitcoin ATM Location Qualification - CLI Interface

Main entry point for the btm-qualify command line tool.
"""

import asyncio
import json
import logging
import sys
import signal
import os
from pathlib import Path

import click
import pandas as pd
from pydantic import ValidationError

from .config import config
from .exceptions import QualificationError
from .data.google_maps import GoogleMapsClient
from .data.census import CensusClient
from .storage.database import DatabaseManager
from .storage.settings import Settings, settings_store
from .analysis.rules import QualificationRulesService
from .analysis.qualification import QualificationService

# Set up logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler(sys.stdout),
        logging.FileHandler('btm_qualify.log')
    ]
)

logger = logging.getLogger(__name__)


def _build_settings(min_density, radius) -> Settings:
    """Stored settings with any command-line overrides applied"""
    current = settings_store.get_settings()
    try:
        return Settings(
            minimum_population_density=min_density if min_density is not None else current.minimum_population_density,
            search_radius_miles=radius if radius is not None else current.search_radius_miles
        )
    except ValidationError as e:
        raise click.BadParameter(str(e))


def _build_service(database_url) -> QualificationService:
    db_manager = DatabaseManager(database_url)
    return QualificationService(rules_service=QualificationRulesService(db_manager))


def _echo_result(result):
    click.echo(f"[RESULT] {'QUALIFIED' if result.qualified else 'NOT QUALIFIED'}: {result.formatted_address}")
    click.echo(f"   • {result.summary}")

    density = result.population_density
    click.echo("[DATA] Population Density:")
    click.echo(f"   • ZIP {density.zip_code}: {density.density:,} people per sq mi "
               f"(minimum {density.threshold:,.0f}{', reduced' if density.reduced_minimum_applied else ''})")
    click.echo(f"   • Population: {density.population:,} (land area from {density.land_area_source})")

    proximity = result.btm_proximity
    nearest = (f"{proximity.nearest_bitcoin_depot_miles:.2f} mi"
               if proximity.nearest_bitcoin_depot_miles is not None else 'none found')
    click.echo("[MAP] Nearby ATMs:")
    click.echo(f"   • {config.qualification.brand_name}: {proximity.bitcoin_depot_count} (nearest {nearest}, "
               f"required {proximity.required_distance_miles:g} mi)")
    click.echo(f"   • Competitors within one mile: {proximity.competitors_within_one_mile}"
               + (f" (maximum {proximity.max_competitors_within_one_mile})"
                  if proximity.max_competitors_within_one_mile is not None else ''))
    for competitor in proximity.competitors:
        click.echo(f"     - {competitor.name}: {competitor.count}")

    business = result.business_type
    amount = f", ${business.tier_amount}" if business.tier_amount else ''
    click.echo("[STORE] Business:")
    click.echo(f"   • {business.name}: {business.category} ({business.tier}{amount})")

    hours = result.store_hours
    click.echo("[CLOCK] Store Hours:")
    click.echo(f"   • {hours.days_open} days open, {hours.average_hours_per_day:.1f} hours average")
    for day in hours.weekly_schedule:
        click.echo(f"     - {day.day}: {day.hours}")

    if result.state_rejection.is_auto_rejected:
        click.echo(f"[WARN]  State rejected: {result.state_rejection.rejection_reason}")


@click.group()
@click.version_option(version='1.0.0')
def cli():
    """
    Bitcoin ATM Location Qualification

    Checks whether a street address qualifies for a Bitcoin ATM placement
    based on population density, nearby kiosks, business type and hours.
    """
    pass


@cli.command()
@click.argument('address')
@click.option('--min-density', type=float, help='Minimum population density override')
@click.option('--radius', type=float, help='Kiosk search radius override in miles')
@click.option('--json', 'as_json', is_flag=True, help='Print the result as JSON')
@click.option('--output', '-o', help='Write the JSON result to a file')
@click.option('--database-url', help='Database URL override')
def qualify(address, min_density, radius, as_json, output, database_url):
    """
    Qualify a single address for Bitcoin ATM placement
    """
    settings = _build_settings(min_density, radius)

    try:
        service = _build_service(database_url)
        result = asyncio.run(service.qualify_location(address, settings))
    except QualificationError as e:
        logger.error(f"Qualification failed: {e}")
        raise click.ClickException(str(e))
    except Exception as e:
        logger.error(f"Error during qualification: {e}")
        raise click.ClickException(f"Qualification failed: {e}")

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
    else:
        _echo_result(result)

    if output:
        Path(output).parent.mkdir(parents=True, exist_ok=True)
        with open(output, 'w', encoding='utf-8') as f:
            json.dump(result.to_dict(), f, indent=2)
        click.echo(f"[REPORT] Result saved to: {output}")


@cli.command()
@click.argument('input_file', type=click.Path(exists=True, dir_okay=False))
@click.option('--output', '-o', required=True, help='Output CSV file path')
@click.option('--address-column', default='address', help='Column holding the addresses')
@click.option('--min-density', type=float, help='Minimum population density override')
@click.option('--radius', type=float, help='Kiosk search radius override in miles')
@click.option('--database-url', help='Database URL override')
def batch(input_file, output, address_column, min_density, radius, database_url):
    """
    Qualify every address in a CSV file

    Writes one row per address with the outcome and the key measurements.
    """
    settings = _build_settings(min_density, radius)

    try:
        df = pd.read_csv(input_file)
    except Exception as e:
        raise click.ClickException(f"Could not read {input_file}: {e}")

    if address_column not in df.columns:
        raise click.ClickException(f"Column '{address_column}' not found in {input_file}")

    addresses = df[address_column].dropna().astype(str).tolist()
    if not addresses:
        click.echo("[WARN]  No addresses found")
        return

    click.echo(f"[DATA] Qualifying {len(addresses)} addresses...")

    try:
        service = _build_service(database_url)
        records = asyncio.run(service.qualify_addresses(addresses, settings))
    except Exception as e:
        logger.error(f"Error during batch qualification: {e}")
        raise click.ClickException(f"Batch failed: {e}")

    results = pd.DataFrame(records)
    Path(output).parent.mkdir(parents=True, exist_ok=True)
    results.to_csv(output, index=False)

    qualified = int(results['qualified'].fillna(False).astype(bool).sum())
    errors = int(results['error'].notna().sum()) if 'error' in results.columns else 0
    click.echo("✅ Batch completed!")
    click.echo(f"   • Qualified: {qualified}")
    click.echo(f"   • Not qualified: {len(results) - qualified - errors}")
    click.echo(f"   • Errors: {errors}")
    click.echo(f"📁 Output file: {output}")


@cli.command('init-db')
@click.option('--seed', is_flag=True, help='Load the starter rule set')
@click.option('--overwrite', is_flag=True, help='Replace existing rule rows when seeding')
@click.option('--database-url', help='Database URL override')
def init_db(seed, overwrite, database_url):
    """
    Create the rule tables
    """
    try:
        db_manager = DatabaseManager(database_url)
        click.echo("✅ Database tables ready")

        if seed:
            inserted = db_manager.seed_default_rules(overwrite=overwrite)
            for table_name, count in inserted.items():
                click.echo(f"   • {table_name}: {count} rows inserted")
    except Exception as e:
        logger.error(f"Error initializing database: {e}")
        raise click.ClickException(f"Database initialization failed: {e}")


@cli.group()
def rules():
    """
    Inspect and edit qualification rules
    """
    pass


@rules.command('show')
@click.option('--database-url', help='Database URL override')
def rules_show(database_url):
    """
    List every rule row
    """
    try:
        summary = DatabaseManager(database_url).get_rules_summary()
    except Exception as e:
        logger.error(f"Error reading rules: {e}")
        raise click.ClickException(f"Could not read rules: {e}")

    click.echo("[RULES] Auto-rejected states:")
    for state in summary['auto_rejected_states']:
        status = f"discontinued {state['discontinued_date']}" if state['discontinued_date'] else 'active'
        click.echo(f"   • {state['state_code']} {state['state_name']}: {state['reason']} ({status})")

    click.echo("[RULES] Proximity rules:")
    for rule in summary['proximity_rules']:
        click.echo(f"   • density {rule['density_min']:,}-{rule['density_max']:,}: "
                   f"{rule['standard_distance_miles']} mi {rule['state_exceptions'] or ''}")

    click.echo("[RULES] Kiosk density rules:")
    for rule in summary['kiosk_density_rules']:
        click.echo(f"   • density {rule['density_min']:,}-{rule['density_max']:,}: "
                   f"{rule['standard_kiosk_limit']} kiosks {rule['state_exceptions'] or ''}")

    click.echo("[RULES] Population minimums:")
    for rule in summary['population_minimum_rules']:
        click.echo(f"   • {rule['state_code'] or 'default'}: population {rule['population_minimum']:,}, "
                   f"density {rule['density_minimum']:,}")

    click.echo("[RULES] Ignored competitors:")
    for competitor in summary['ignored_competitors']:
        click.echo(f"   • {competitor['competitor_name']}")


@rules.command('reject-state')
@click.argument('state_code')
@click.argument('state_name')
@click.option('--reason', required=True, help='Reason shown when a location is rejected')
@click.option('--database-url', help='Database URL override')
def rules_reject_state(state_code, state_name, reason, database_url):
    """
    Auto-reject every location in a state
    """
    if len(state_code) != 2 or not state_code.isalpha():
        raise click.BadParameter(f"Invalid state code: {state_code}")

    try:
        state = DatabaseManager(database_url).add_auto_rejected_state(state_code, state_name, reason)
    except Exception as e:
        logger.error(f"Error rejecting state: {e}")
        raise click.ClickException(f"Could not reject state: {e}")

    click.echo(f"✅ {state['state_code']} ({state['state_name']}) is now auto-rejected: {state['reason']}")


@cli.command()
def status():
    """
    Show configuration, rule counts and connection health
    """
    click.echo("System Status")
    click.echo("=" * 50)

    try:
        db_manager = DatabaseManager()
        settings = settings_store.get_settings()

        click.echo("[GEAR]  Settings:")
        click.echo(f"   • Minimum population density: {settings.minimum_population_density:,.0f}")
        click.echo(f"   • Search radius: {settings.search_radius_miles:g} mi")

        click.echo("[LINK] Connection Tests:")
        db_ok = db_manager.test_connection()
        click.echo(f"   • Database: {'OK' if db_ok else 'ERROR'}")

        if db_ok:
            click.echo("[DB]  Rule tables:")
            for table_name, count in QualificationRulesService(db_manager).rule_counts().items():
                click.echo(f"   • {table_name.replace('_', ' ').title()}: {count}")

        async def _check_apis():
            return await asyncio.gather(
                GoogleMapsClient().test_connection(),
                CensusClient(db_manager=db_manager).test_connection()
            )

        maps_ok, census_ok = asyncio.run(_check_apis())
        click.echo(f"   • Google Maps API: {'OK' if maps_ok else 'ERROR'}")
        click.echo(f"   • Census API: {'OK' if census_ok else 'ERROR'}")

        if db_ok and maps_ok and census_ok:
            click.echo("SUCCESS: System is ready!")
        else:
            click.echo("WARNING: Some connections failed")

    except Exception as e:
        logger.error(f"Error getting status: {e}")
        click.echo(f"[ERROR] Error getting status: {e}")
        raise click.ClickException(f"Status check failed: {e}")


@cli.command()
@click.option('--host', default='0.0.0.0', help='Host to bind to')
@click.option('--port', default=5000, type=int, help='Port to bind to')
@click.option('--debug', is_flag=True, help='Run in debug mode')
def serve(host, port, debug):
    """
    Run the web server for qualification, settings and metrics
    """
    from .web import run_server

    click.echo(f"Starting web server on {host}:{port}")

    def signal_handler(signum, frame):
        click.echo("Shutting down gracefully...")
        os._exit(0)

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    try:
        run_server(host=host, port=port, debug=debug)
    except Exception as e:
        logger.error(f"Error running server: {e}")
        raise click.ClickException(f"Server failed: {e}")


if __name__ == '__main__':
    cli()
