"""Pytest configuration and shared fixtures for instance_reporter tests."""

import subprocess

import pytest
import requests

from instance_reporter.core.config import load_settings
from instance_reporter.core.logger import ReporterLogger


HOSTNAMECTL_OUTPUT = (
    " Static hostname: perforce-01\n"
    "Operating System: Ubuntu 22.04.4 LTS\n"
    "          Kernel: Linux 5.15.0-1057-aws\n"
    "    Architecture: x86-64\n"
)

AWS_DOCUMENT = (
    '{\n'
    '  "accountId" : "123456789012",\n'
    '  "instanceId" : "i-0fce0e35c7b971d6a",\n'
    '  "instanceType" : "c5.18xlarge",\n'
    '  "region" : "us-east-1"\n'
    '}'
)

AZURE_DOCUMENT = '{"compute":{"location":"westeurope","vmId":"abc-123"},"network":{}}'

VALID_CONFIG = (
    "metrics_host=http://monitor.example.com:9091\n"
    "metrics_customer=acme\n"
    "metrics_instance=perforce-01\n"
    "metrics_user=acme_user\n"
    "metrics_passwd=s3cret\n"
)


class FakeResponse:
    """
    Minimal stand-in for requests.Response.

    Like requests for a ``text/plain`` body without charset, ``text`` is
    the raw content decoded as ISO-8859-1 when only ``content`` is given.
    """

    def __init__(self, text=None, status_code=200, content=None):
        if content is None:
            content = (text or "").encode("utf-8")
        if text is None:
            text = content.decode("iso-8859-1")
        self.text = text
        self.content = content
        self.status_code = status_code

    @property
    def ok(self):
        return self.status_code < 400


class FakeSession:
    """
    Records requests and replays scripted responses.

    Each entry of ``responses`` is either a FakeResponse or an exception
    instance to raise.
    """

    def __init__(self, responses=None):
        self.responses = list(responses or [])
        self.calls = []
        self.trust_env = True
        self.closed = False

    def request(self, method, url, **kwargs):
        self.calls.append((method, url, kwargs))
        result = self.responses.pop(0)
        if isinstance(result, Exception):
            raise result
        return result

    def post(self, url, **kwargs):
        return self.request("POST", url, **kwargs)

    def close(self):
        self.closed = True


@pytest.fixture
def write_config(tmp_path):
    """Write a config file and return its path."""
    def _write(content=VALID_CONFIG, extra=""):
        path = tmp_path / "push_metrics.cfg"
        path.write_text(content + extra)
        return str(path)
    return _write


@pytest.fixture
def log_file(tmp_path):
    return tmp_path / "logs" / "report_instance_data.log"


@pytest.fixture
def settings(write_config, log_file):
    """Valid settings whose log file lives under tmp_path."""
    return load_settings(write_config(extra=f"metadata_logfile={log_file}\n"))


@pytest.fixture
def reporter_logger(log_file):
    """Configured ReporterLogger, handlers removed after the test."""
    logger = ReporterLogger(str(log_file), "DEBUG")
    yield logger
    logger.close()


@pytest.fixture
def fake_hostnamectl(monkeypatch):
    """Replace subprocess.run so hostnamectl returns canned output."""
    calls = []

    def mock_run(command, **kwargs):
        calls.append(command)
        return subprocess.CompletedProcess(command, 0, stdout=HOSTNAMECTL_OUTPUT.encode("utf-8"))

    monkeypatch.setattr(subprocess, "run", mock_run)
    return calls


@pytest.fixture
def no_sleep(monkeypatch):
    """Record sleeps of the push loop instead of waiting."""
    sleeps = []
    monkeypatch.setattr("instance_reporter.core.sender.time.sleep", sleeps.append)
    return sleeps


@pytest.fixture
def fake_network(monkeypatch):
    """
    Route every requests.Session call through a scripted handler.

    The test sets ``router.push_responses`` to the bodies returned by the
    push endpoint, in order; once exhausted the endpoint answers ok. Metadata endpoints answer with the AWS token
    and identity document, or the Azure instance document.
    """
    class Router:
        def __init__(self):
            self.push_responses = ['{"status":"ok"}']
            self.calls = []

        def __call__(self, session, method, url, **kwargs):
            self.calls.append((method, url, kwargs))
            if url.endswith("/latest/api/token"):
                return FakeResponse("AQAEAtoken==")
            if url.endswith("/instance-identity/document"):
                return FakeResponse(AWS_DOCUMENT)
            if "/metadata/instance" in url:
                return FakeResponse(AZURE_DOCUMENT)
            if "/data/" in url:
                body = self.push_responses.pop(0) if self.push_responses else '{"status":"ok"}'
                return FakeResponse(body)
            raise requests.exceptions.ConnectionError(f"unexpected url {url}")

        def pushes(self):
            return [call for call in self.calls if call[0] == "POST"]

    router = Router()

    def mock_request(self, method, url, **kwargs):
        return router(self, method, url, **kwargs)

    monkeypatch.setattr(requests.Session, "request", mock_request)
    return router
