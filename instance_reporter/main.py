"""
Point d'entrée principal du rapporteur de données d'instance

Collecte les métadonnées de l'instance courante (AWS ou Azure) et
l'identité de l'hôte, puis les envoie au serveur de métriques central.

Utilisation typique (crontab) :

    10 0 * * * report-instance-data -c /p4/common/config/.push_metrics.cfg > /dev/null 2>&1 ||:
"""

import sys
import signal
import argparse
from typing import List, Optional

from instance_reporter.core.config import DEFAULT_CONFIG_FILE, ConfigurationError, load_settings
from instance_reporter.core.logger import ReporterLogger
from instance_reporter.core.collector import DEFAULT_METRICS_ROOT, InstanceDataCollector, Platform
from instance_reporter.core.sender import MetricsSender
from instance_reporter.core.scheduler import ReportScheduler, validate_time


class InstanceDataReporter:
    """
    Rapporteur principal

    Orchestre la collecte des données d'instance et leur envoi.
    """

    def __init__(self, settings, logger, platform: Platform = Platform.AWS,
                 metrics_root: str = DEFAULT_METRICS_ROOT,
                 metadata_session=None, push_session=None):
        """
        Initialise le rapporteur

        Args:
            settings: Instance de MetricsSettings
            logger: Instance de ReporterLogger
            platform: Plateforme cloud sélectionnée
            metrics_root: Dossier du fichier de données temporaire
            metadata_session: Session HTTP du service de métadonnées (optionnelle)
            push_session: Session HTTP du serveur de métriques (optionnelle)
        """
        self.settings = settings
        self.logger = logger
        self.app_logger = logger.get_logger()
        self.metrics_root = metrics_root

        self.collector = InstanceDataCollector(settings, logger, platform, metadata_session)
        self.sender = MetricsSender(settings, logger, push_session)
        self.scheduler = None

    def run_once(self) -> bool:
        """
        Effectue une collecte complète et envoie les données

        Returns:
            bool: True si l'envoi a abouti
        """
        try:
            data_file = self.collector.collect_to_file(self.metrics_root)
        except OSError as e:
            self.app_logger.error(f"Impossible d'écrire les données d'instance dans {self.metrics_root}: {e}")
            return False

        success, attempts = self.sender.push_file(data_file)
        if success:
            self.app_logger.debug(f"Envoi réussi après {len(attempts)} tentative(s)")
        return success

    def run_scheduled(self, at: str):
        """
        Lance le rapporteur en mode planifié (bloquant)

        Args:
            at: Heure quotidienne d'exécution (HH:MM)
        """
        self.scheduler = ReportScheduler(self.logger, self.run_once, at)
        self._setup_signal_handlers()
        self.scheduler.run_forever()

    def _setup_signal_handlers(self):
        """
        Configure les gestionnaires de signaux pour l'arrêt propre
        """
        def signal_handler(signum, frame):
            signal_name = signal.Signals(signum).name
            self.app_logger.info(f"Signal {signal_name} reçu - Arrêt en cours...")
            if self.scheduler:
                self.scheduler.stop()

        if hasattr(signal, 'SIGTERM'):
            signal.signal(signal.SIGTERM, signal_handler)

        if hasattr(signal, 'SIGINT'):
            signal.signal(signal.SIGINT, signal_handler)

    def close(self):
        """Libère les sessions HTTP"""
        self.collector.close()
        self.sender.close()


class UsageArgumentParser(argparse.ArgumentParser):
    """ArgumentParser qui termine avec le code 1 sur erreur d'usage"""

    def error(self, message):
        self.print_usage(sys.stderr)
        self.exit(1, f"\nUsage Error:\n\n{message}\n\n")


def build_parser() -> argparse.ArgumentParser:
    """
    Construit l'analyseur de ligne de commande

    Returns:
        argparse.ArgumentParser: Analyseur configuré
    """
    parser = UsageArgumentParser(
        prog='report-instance-data',
        allow_abbrev=False,
        description='Collects metadata about the current instance and pushes the data centrally.',
        epilog='This is not normally required on customer machines. It assumes an SDP setup.'
    )

    parser.add_argument(
        '-c',
        dest='config',
        metavar='<config_file>',
        default=DEFAULT_CONFIG_FILE,
        help=f'Config file with metrics_* settings (default: {DEFAULT_CONFIG_FILE})'
    )

    parser.add_argument(
        '-m',
        dest='metrics_root',
        metavar='<metrics_root>',
        default=DEFAULT_METRICS_ROOT,
        help=f'Directory where metrics are being written (default: {DEFAULT_METRICS_ROOT})'
    )

    platform_group = parser.add_mutually_exclusive_group()
    platform_group.add_argument(
        '-aws',
        dest='platform',
        action='store_const',
        const=Platform.AWS,
        help='Collect AWS specific data (default)'
    )
    platform_group.add_argument(
        '-azure',
        dest='platform',
        action='store_const',
        const=Platform.AZURE,
        help='Collect Azure specific data'
    )
    platform_group.add_argument(
        '-none',
        dest='platform',
        action='store_const',
        const=Platform.NONE,
        help='Collect host identity only'
    )
    parser.set_defaults(platform=Platform.AWS)

    parser.add_argument(
        '-schedule',
        dest='schedule',
        metavar='HH:MM',
        type=_schedule_time,
        help='Stay in the foreground and report every day at HH:MM'
    )

    return parser


def _schedule_time(value: str) -> str:
    try:
        return validate_time(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e))


def main(argv: Optional[List[str]] = None) -> int:
    """
    Point d'entrée principal avec gestion des arguments de ligne de commande

    Returns:
        int: Code de sortie (0 succès, 1 erreur)
    """
    args = build_parser().parse_args(argv)

    try:
        settings = load_settings(args.config)
    except ConfigurationError as e:
        print(f"\nError: {e}\n", file=sys.stderr)
        return 1

    logger = ReporterLogger(settings.metadata_logfile, settings.log_level)
    logger.log_config_info(settings)
    reporter = InstanceDataReporter(settings, logger, args.platform, args.metrics_root)

    try:
        if args.schedule:
            reporter.run_scheduled(args.schedule)
            return 0

        return 0 if reporter.run_once() else 1

    except KeyboardInterrupt:
        logger.get_logger().info("Arrêt demandé par l'utilisateur")
        return 0
    finally:
        reporter.close()
        logger.close()


if __name__ == '__main__':
    sys.exit(main())
