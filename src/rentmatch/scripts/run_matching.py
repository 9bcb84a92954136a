"""
Script para recalcular los match scores de un usuario.

Recalcula todas las propiedades candidatas y muestra el top de matches.
Pensado para correr ante un cambio de preferencias o desde cron.

Uso:
    python -m rentmatch.scripts.run_matching --user-id <uuid>
    python -m rentmatch.scripts.run_matching --user-id <uuid> --limit 5
    python -m rentmatch.scripts.run_matching --user-id <uuid> --rank-only
"""

import argparse
import asyncio
import logging
import signal
import sys
from typing import Optional

import structlog

from rentmatch.config import load_settings
from rentmatch.exceptions import MatchScoreError
from rentmatch.matching import MatchScoreService

logger = structlog.get_logger()


def configure_logging():
    """Configura logging estándar + structlog."""
    settings = load_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(message)s",
        force=True,
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


async def run_matching(
    user_id: str,
    limit: int = 10,
    rank_only: bool = False,
    service: Optional[MatchScoreService] = None,
) -> int:
    """
    Ejecuta el recompute y el ranking.

    Returns:
        Exit code: 0 si todo salió bien, 1 si hubo errores
    """
    service = service or MatchScoreService()
    exit_code = 0

    if not rank_only:
        # SIGTERM corta el recompute sin dejar scores a medio escribir
        cancel_event = asyncio.Event()
        loop = asyncio.get_running_loop()
        try:
            loop.add_signal_handler(signal.SIGTERM, cancel_event.set)
            handler_installed = True
        except (NotImplementedError, RuntimeError):
            # Windows no soporta add_signal_handler
            handler_installed = False

        try:
            result = await service.recompute_all(user_id, cancel_event=cancel_event)
        finally:
            if handler_installed:
                loop.remove_signal_handler(signal.SIGTERM)

        if result.cancelled:
            logger.warning("Recompute cancelado", skipped=result.skipped)
        if result.error is not None:
            logger.error(
                "Recompute con errores",
                error=result.error.message,
                failed=result.failed,
            )
            for property_id, message in result.errors.items():
                logger.error("Propiedad fallida", property_id=property_id, error=message)
            exit_code = 1

    ranking = await service.rank(user_id, limit)
    if not ranking.success:
        logger.error("No se pudo obtener el ranking", error=ranking.error.message)
        return 1

    for position, match in enumerate(ranking.matches, start=1):
        prop = match.property_snapshot
        logger.info(
            "Match",
            position=position,
            score=match.score,
            property_id=match.property_id,
            title=prop.title,
            city=prop.city,
            price=prop.price,
            factors=match.factors,
        )

    if not ranking.matches:
        logger.info("El usuario no tiene matches calculados", user_id=user_id)

    return exit_code


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Recalcula y rankea match scores")
    parser.add_argument("--user-id", required=True, help="UUID del usuario")
    parser.add_argument(
        "--limit", type=int, default=10, help="Cantidad de matches a mostrar"
    )
    parser.add_argument(
        "--rank-only",
        action="store_true",
        help="No recalcular, solo mostrar el ranking guardado",
    )
    return parser.parse_args(argv)


def main():
    """Entry point del script."""
    args = parse_args()

    try:
        configure_logging()
        logger.info("Iniciando matching...", user_id=args.user_id)
        exit_code = asyncio.run(
            run_matching(args.user_id, limit=args.limit, rank_only=args.rank_only)
        )
        sys.exit(exit_code)

    except KeyboardInterrupt:
        logger.info("Matching interrumpido por usuario")
        sys.exit(130)
    except MatchScoreError as e:
        logger.error("Configuración inválida", error=e.message)
        sys.exit(1)
    except Exception as e:
        logger.error("Error fatal en matching", error=str(e))
        sys.exit(1)


if __name__ == "__main__":
    main()
