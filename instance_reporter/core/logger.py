"""
Module de logging pour le rapporteur de données d'instance

Ce module fournit un système de logging centralisé avec :
- Fichier de log en ajout (append) avec rotation
- Horodatage de chaque ligne
- Sortie console simultanée
"""

import os
import sys
import logging
import logging.handlers
from typing import Optional

LOGGER_NAME = 'InstanceDataReporter'
LOG_DATE_FORMAT = '%Y-%m-%d %H:%M:%S'
MAX_LOG_SIZE = 10485760  # 10MB
BACKUP_COUNT = 5


class ReporterLogger:
    """
    Gestionnaire de logging pour le rapporteur

    Configure un logger nommé écrivant à la fois dans le fichier de log
    (metadata_logfile) et sur la console, avec le même horodatage.
    """

    def __init__(self, log_file: Optional[str] = None, log_level: str = 'INFO'):
        """
        Initialise le système de logging

        Args:
            log_file: Chemin du fichier de log (None = console uniquement)
            log_level: Niveau de log (DEBUG, INFO, ...)
        """
        self.log_file = log_file
        self.log_level = log_level
        self.logger = logging.getLogger(LOGGER_NAME)

        # Éviter la duplication si déjà configuré
        if not self.logger.handlers:
            self._setup_logging()

    def _setup_logging(self):
        """
        Configure les handlers fichier et console
        """
        level = getattr(logging, self.log_level.upper(), logging.INFO)
        self.logger.setLevel(level)
        self.logger.propagate = False

        formatter = logging.Formatter(
            fmt='%(asctime)s: %(message)s',
            datefmt=LOG_DATE_FORMAT
        )

        if self.log_file:
            try:
                # Créer le dossier de log si nécessaire
                log_dir = os.path.dirname(self.log_file)
                if log_dir and not os.path.exists(log_dir):
                    os.makedirs(log_dir, exist_ok=True)

                file_handler = logging.handlers.RotatingFileHandler(
                    filename=self.log_file,
                    mode='a',
                    maxBytes=MAX_LOG_SIZE,
                    backupCount=BACKUP_COUNT,
                    encoding='utf-8'
                )
                file_handler.setLevel(level)
                file_handler.setFormatter(formatter)
                self.logger.addHandler(file_handler)

            except OSError as e:
                print(f"Could not start logging to {self.log_file}: {e}", file=sys.stderr)

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        self.logger.addHandler(console_handler)

        self.logger.debug(f"Fichier de log: {self.log_file}")

    def get_logger(self) -> logging.Logger:
        """
        Retourne l'instance du logger

        Returns:
            logging.Logger: Instance du logger configuré
        """
        return self.logger

    def log_config_info(self, settings):
        """
        Log la configuration (sans le mot de passe)

        Args:
            settings: Instance de MetricsSettings
        """
        for key, value in settings.describe().items():
            self.logger.debug(f"Config.{key}: {value}")

    def close(self):
        """Ferme et retire tous les handlers"""
        for handler in list(self.logger.handlers):
            handler.close()
            self.logger.removeHandler(handler)


def get_logger(name: str = LOGGER_NAME) -> logging.Logger:
    """
    Fonction utilitaire pour récupérer un logger nommé

    Args:
        name: Nom du logger

    Returns:
        logging.Logger: Instance du logger
    """
    return logging.getLogger(name)
