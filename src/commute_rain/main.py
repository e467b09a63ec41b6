"""Main CLI application for tomorrow's commute rain notifications."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Optional, Sequence

from .config import ConfigurationError, NotifierConfig, load_config_from_env
from .data_sources.openweather import DAILY_EXCLUDE, fetch_onecall
from .logging_config import configure_logging
from .pipelines.notifier import CommuteNotifier
from .scheduler import CommuteScheduler

logger = logging.getLogger("commute_rain.main")


def create_config() -> NotifierConfig:
    """Load configuration, exiting before any network call when it is invalid."""

    try:
        return load_config_from_env()
    except ConfigurationError as e:
        logger.error("Invalid configuration: %s", e)
        sys.exit(1)


def cmd_run(args: argparse.Namespace) -> None:
    """Fetch tomorrow's forecast and post both messages."""

    config = create_config()

    try:
        CommuteNotifier(config).run()
    except Exception:
        logger.exception("Notification run failed")
        sys.exit(1)


def cmd_preview(args: argparse.Namespace) -> None:
    """Print both payloads without posting them."""

    config = create_config()

    try:
        detailed, verdict = CommuteNotifier(config).preview()
    except Exception:
        logger.exception("Preview failed")
        sys.exit(1)

    print(json.dumps(detailed, ensure_ascii=False, indent=2))
    print(json.dumps(verdict, ensure_ascii=False, indent=2))


def cmd_schedule(args: argparse.Namespace) -> None:
    config = create_config()
    scheduler = CommuteScheduler(config)

    print(f"🚀 Notifications quotidiennes à {config.notify_time.label()}")
    print("Ctrl+C pour arrêter.")

    scheduler.start()


def cmd_test_api(args: argparse.Namespace) -> None:
    """Test the OpenWeatherMap API key with a single request."""

    config = create_config()

    try:
        print("🔍 Test de connexion OpenWeatherMap...")
        payload = fetch_onecall(
            config.openweather, config.home.lat, config.home.lon, exclude=DAILY_EXCLUDE,
        )
    except Exception as e:
        print(f"❌ Échec de connexion: {str(e)}")
        sys.exit(1)

    days = payload.get("daily") or []
    print(f"✅ Connexion réussie ! {len(days)} jours de prévisions reçus")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Alerte pluie pour le trajet domicile-travail de demain",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
exemples:
  python -m commute_rain run       # envoie les deux messages
  python -m commute_rain preview   # affiche les messages sans les envoyer
  python -m commute_rain schedule  # envoi quotidien à NOTIFY_TIME
  python -m commute_rain test      # test de la clé API

variables d'environnement:
  HOME_LAT, HOME_LON, WORK_LAT, WORK_LON             coordonnées (obligatoires)
  DEPARTURE_TIME, ARRIVAL_TIME                       trajet aller HH:MM (obligatoires)
  RETURN_DEPARTURE_TIME, RETURN_ARRIVAL_TIME         trajet retour HH:MM (obligatoires)
  OWM_API_KEY, DISCORD_WEBHOOK_URL                   (obligatoires)
  RAIN_THRESHOLD (30), DEBUG (false), COMMUTE_TIMEZONE, NOTIFY_TIME (20:00)
        """
    )

    subparsers = parser.add_subparsers(dest="command", help="commande")
    subparsers.add_parser("run", help="envoie les prévisions de demain")
    subparsers.add_parser("preview", help="affiche les messages sans les envoyer")
    subparsers.add_parser("schedule", help="envoi quotidien")
    subparsers.add_parser("test", help="test de connexion à l'API météo")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> None:
    """Main CLI entry point."""

    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return

    configure_logging()

    command_handlers = {
        "run": cmd_run,
        "preview": cmd_preview,
        "schedule": cmd_schedule,
        "test": cmd_test_api,
    }

    handler = command_handlers.get(args.command)
    if handler:
        handler(args)
    else:
        print(f"❌ Commande inconnue: {args.command}")
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
