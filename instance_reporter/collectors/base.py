"""
Classe de base pour tous les collecteurs du rapporteur

Ce module définit l'interface commune que tous les collecteurs
doivent implémenter, ainsi que des utilitaires partagés.
"""

import time
import subprocess
from abc import ABC, abstractmethod
from typing import Dict, Any, List, Optional


class BaseCollector(ABC):
    """
    Classe de base abstraite pour tous les collecteurs

    Un collecteur produit un segment d'octets du payload. Les erreurs
    rencontrées sont enregistrées et loguées, jamais propagées.
    """

    def __init__(self, settings, logger):
        """
        Initialise le collecteur de base

        Args:
            settings: Instance de MetricsSettings
            logger: Logger configuré (logging.Logger)
        """
        self.settings = settings
        self.logger = logger

        # Métadonnées du collecteur
        self.collector_name = self.__class__.__name__
        self.collection_start_time = None
        self.collection_errors: List[str] = []
        self.last_collection_duration = 0.0

    @abstractmethod
    def collect(self) -> bytes:
        """
        Méthode principale de collecte - doit être implémentée par chaque collecteur

        Returns:
            bytes: Segment à ajouter au payload, transmis tel quel
        """
        pass

    def _start_collection(self):
        """
        Démarre une session de collecte
        """
        self.collection_start_time = time.time()
        self.collection_errors = []
        self.logger.debug(f"Début collecte {self.collector_name}")

    def _end_collection(self) -> float:
        """
        Termine une session de collecte

        Returns:
            float: Durée de collecte en secondes
        """
        if self.collection_start_time:
            duration = time.time() - self.collection_start_time
            self.logger.debug(f"Collecte {self.collector_name} terminée en {duration:.2f}s")

            if self.collection_errors:
                self.logger.warning(f"Collecte {self.collector_name} avec {len(self.collection_errors)} erreur(s)")

            self.last_collection_duration = duration
            return duration
        return 0.0

    def _record_error(self, error: Exception, level: str = 'warning'):
        """
        Enregistre et logue une erreur de collecte

        Args:
            error: Exception rencontrée
            level: Niveau de log à utiliser
        """
        error_details = f"{self.collector_name}: {error}"
        self.collection_errors.append(error_details)
        getattr(self.logger, level)(error_details)

    def _execute_command(self, command: List[str], timeout: int = 30) -> Optional[subprocess.CompletedProcess]:
        """
        Exécute une commande système, stdout et stderr fusionnés

        Args:
            command: Commande et arguments
            timeout: Délai maximal en secondes

        Returns:
            CompletedProcess ou None si la commande est introuvable ou expire
        """
        try:
            result = subprocess.run(
                command,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                timeout=timeout
            )
            if result.returncode != 0:
                self.logger.warning(f"Commande échouée: {' '.join(command)} (code: {result.returncode})")
            return result

        except FileNotFoundError:
            self.logger.warning(f"Commande introuvable: {command[0]}")
            return None
        except subprocess.TimeoutExpired:
            self.logger.warning(f"Timeout pour la commande: {' '.join(command)}")
            return None

    def get_collection_stats(self) -> Dict[str, Any]:
        """
        Retourne les statistiques de la dernière collecte

        Returns:
            dict: Statistiques du collecteur
        """
        return {
            'collector_name': self.collector_name,
            'collection_duration': self.last_collection_duration,
            'errors_count': len(self.collection_errors),
            'errors': self.collection_errors.copy()
        }
