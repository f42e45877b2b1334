"""
Module de planification du rapporteur

Alternative à la tâche cron : le processus reste au premier plan et
déclenche une collecte + envoi chaque jour à l'heure configurée.
"""

import re
import threading
from typing import Callable, Optional

import schedule


TIME_PATTERN = re.compile(r'^([01]\d|2[0-3]):[0-5]\d$')

# Intervalle de vérification des tâches planifiées (secondes)
CHECK_INTERVAL = 60


def validate_time(value: str) -> str:
    """
    Valide une heure au format HH:MM

    Raises:
        ValueError: Format invalide
    """
    if not TIME_PATTERN.match(value):
        raise ValueError(f"Invalid time (expected HH:MM): {value}")
    return value


class ReportScheduler:
    """
    Planificateur quotidien basé sur la bibliothèque 'schedule'
    """

    def __init__(self, logger, report_callback: Callable[[], bool], at: str = "00:10"):
        """
        Initialise le scheduler

        Args:
            logger: Instance de ReporterLogger
            report_callback: Fonction lançant une collecte + envoi, retourne le succès
            at: Heure quotidienne d'exécution (HH:MM)
        """
        self.logger = logger.get_logger()
        self.report_callback = report_callback
        self.at = validate_time(at)

        self.scheduler = schedule.Scheduler()
        self.stop_event = threading.Event()
        self.is_running = False

        self.scheduler.every().day.at(self.at).do(self._scheduled_report)
        self.logger.info(f"Planification configurée: quotidienne à {self.at}")

    @property
    def next_run(self):
        """Date de la prochaine exécution planifiée"""
        return self.scheduler.next_run

    def _scheduled_report(self):
        """
        Méthode appelée par le scheduler pour déclencher un rapport
        """
        self.logger.info("Rapport planifié déclenché")

        try:
            if not self.report_callback():
                self.logger.error("Rapport planifié terminé en échec")
        except Exception:
            self.logger.exception("Erreur lors du rapport planifié")
        finally:
            self.logger.info(f"Prochain rapport: {self.next_run}")

    def run_forever(self, check_interval: float = CHECK_INTERVAL):
        """
        Boucle principale, bloquante jusqu'à l'appel de stop()

        Args:
            check_interval: Intervalle de vérification en secondes
        """
        self.is_running = True
        self.stop_event.clear()
        self.logger.info(f"Scheduler démarré, prochain rapport: {self.next_run}")

        while not self.stop_event.is_set():
            self.scheduler.run_pending()
            self.stop_event.wait(timeout=check_interval)

        self.is_running = False
        self.logger.info("Scheduler arrêté")

    def stop(self):
        """
        Demande l'arrêt de la boucle
        """
        self.stop_event.set()
