"""
Collecteur d'identité de l'hôte

Premier segment du payload : sortie de hostnamectl, ou à défaut un
résumé équivalent construit avec platform, socket et psutil.
"""

import socket
import platform
from datetime import datetime

import psutil

from .base import BaseCollector


class HostIdentityCollector(BaseCollector):
    """
    Collecteur de l'identité de l'hôte (nom, OS, noyau, architecture)
    """

    command = ['hostnamectl']

    def collect(self) -> bytes:
        """
        Collecte l'identité de l'hôte

        Returns:
            bytes: Sortie brute de hostnamectl, terminée par un saut de ligne
        """
        self._start_collection()

        result = self._execute_command(self.command)
        if result is not None:
            output = result.stdout or b''
        else:
            self.logger.info("hostnamectl indisponible, utilisation du résumé psutil")
            output = self._fallback_summary().encode('utf-8')

        self._end_collection()

        if output and not output.endswith(b'\n'):
            output += b'\n'
        return output

    def _fallback_summary(self) -> str:
        """
        Construit un résumé au format hostnamectl

        Returns:
            str: Lignes "clé: valeur"
        """
        uname = platform.uname()
        fields = [
            ('Static hostname', socket.gethostname()),
            ('Operating System', self._os_name()),
            ('Kernel', f"{uname.system} {uname.release}"),
            ('Architecture', uname.machine),
        ]

        try:
            boot_time = datetime.fromtimestamp(psutil.boot_time())
            fields.append(('Boot Time', boot_time.strftime('%Y-%m-%d %H:%M:%S')))
        except (psutil.Error, OSError) as e:
            self._record_error(e)

        width = max(len(name) for name, _ in fields)
        return '\n'.join(f"{name.rjust(width)}: {value}" for name, value in fields) + '\n'

    def _os_name(self) -> str:
        """Nom de la distribution si disponible"""
        try:
            release = platform.freedesktop_os_release()
            return release.get('PRETTY_NAME', release.get('NAME', platform.system()))
        except (AttributeError, OSError):
            return f"{platform.system()} {platform.release()}"
