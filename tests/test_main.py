"""End-to-end tests for the command line entry point."""

import re

import pytest

import instance_reporter.main as main_module
from instance_reporter.core.collector import INSTANCE_DATA_FILENAME, Platform
from instance_reporter.core.config import REQUIRED_KEYS
from instance_reporter.core.sender import TRANSIENT_AUTH_FAILURE
from instance_reporter.main import InstanceDataReporter, build_parser, main
from tests.conftest import AWS_DOCUMENT, HOSTNAMECTL_OUTPUT, VALID_CONFIG, FakeSession


@pytest.fixture
def run_main(write_config, log_file, tmp_path, fake_hostnamectl, no_sleep, fake_network):
    """Run main() against a valid config, metrics root under tmp_path."""
    metrics_root = tmp_path / "metrics"

    def _run(*flags):
        config = write_config(extra=f"metadata_logfile={log_file}\n")
        return main(["-c", config, "-m", str(metrics_root), *flags])

    _run.metrics_root = metrics_root
    return _run


class TestArguments:
    """Test command line parsing."""

    def test_defaults(self):
        args = build_parser().parse_args([])

        assert args.config == "/p4/common/config/.push_metrics.cfg"
        assert args.metrics_root == "/p4/metrics"
        assert args.platform is Platform.AWS
        assert args.schedule is None

    @pytest.mark.parametrize("flag,platform", [
        ("-aws", Platform.AWS),
        ("-azure", Platform.AZURE),
        ("-none", Platform.NONE),
    ])
    def test_platform_flags(self, flag, platform):
        assert build_parser().parse_args([flag]).platform is platform

    def test_platform_flags_exclusive(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            build_parser().parse_args(["-aws", "-azure"])

        assert exc_info.value.code == 1

    def test_help_exits_zero(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["-h"])

        assert exc_info.value.code == 0
        assert "-azure" in capsys.readouterr().out

    def test_unknown_flag(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["-x"])

        assert exc_info.value.code == 1
        err = capsys.readouterr().err
        assert "usage:" in err
        assert "Usage Error" in err

    @pytest.mark.parametrize("flag", ["-azur", "-az", "-n", "-sched", "-aw"])
    def test_abbreviated_flag_rejected(self, flag, capsys):
        with pytest.raises(SystemExit) as exc_info:
            build_parser().parse_args([flag])

        assert exc_info.value.code == 1
        assert "usage:" in capsys.readouterr().err

    def test_missing_flag_value(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["-c"])

        assert exc_info.value.code == 1

    def test_invalid_schedule_time(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["-schedule", "25:00"])

        assert exc_info.value.code == 1


class TestStartupErrors:
    """Startup errors exit 1 before any network call."""

    def test_missing_config_file(self, tmp_path, capsys, fake_network):
        assert main(["-c", str(tmp_path / "missing.cfg")]) == 1
        assert "Can't find config file" in capsys.readouterr().err
        assert fake_network.calls == []

    @pytest.mark.parametrize("missing_key", REQUIRED_KEYS)
    def test_missing_required_key(self, write_config, capsys, fake_network, monkeypatch, missing_key):
        created = []
        monkeypatch.setattr(main_module, "InstanceDataReporter", lambda *a, **k: created.append(a))
        content = "".join(
            line + "\n" for line in VALID_CONFIG.splitlines()
            if not line.startswith(missing_key + "=")
        )

        assert main(["-c", write_config(content)]) == 1
        assert "Required parameters not supplied" in capsys.readouterr().err
        assert fake_network.calls == []
        assert created == []


class TestEndToEnd:
    """Full collect and push runs with scripted endpoints."""

    def test_aws_success_first_attempt(self, run_main, fake_network, log_file):
        assert run_main() == 0

        content = log_file.read_text()
        assert content.count("Pushing metrics") == 1
        assert content.count("Checking result") == 1
        assert re.search(r"^\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}: Pushing metrics$", content, re.M)

        method, url, kwargs = fake_network.pushes()[0]
        assert url == "http://monitor.example.com:9092/data/?customer=acme&instance=perforce-01"
        assert kwargs["auth"] == ("acme_user", "s3cret")
        assert kwargs["data"] == (HOSTNAMECTL_OUTPUT + AWS_DOCUMENT + "\n").encode()

    def test_payload_file_left_in_place(self, run_main):
        assert run_main() == 0

        data_file = run_main.metrics_root / INSTANCE_DATA_FILENAME
        assert data_file.read_text() == HOSTNAMECTL_OUTPUT + AWS_DOCUMENT + "\n"

    def test_transient_failures_then_success(self, run_main, fake_network, log_file, no_sleep):
        fake_network.push_responses = [TRANSIENT_AUTH_FAILURE, TRANSIENT_AUTH_FAILURE, '{"status":"ok"}']

        assert run_main() == 0

        assert len(fake_network.pushes()) == 3
        assert log_file.read_text().count("Pushing metrics") == 3
        assert no_sleep == [1, 1, 1]

    def test_retry_exhaustion(self, run_main, fake_network, log_file, no_sleep):
        fake_network.push_responses = [TRANSIENT_AUTH_FAILURE] * 10

        assert run_main() == 1

        assert len(fake_network.pushes()) == 10
        assert no_sleep == [1] * 10
        assert "Push loop iterations exceeded" in log_file.read_text()

    def test_azure_mode(self, run_main, fake_network):
        assert run_main("-azure") == 0

        urls = [call[1] for call in fake_network.calls]
        assert "http://169.254.169.254/metadata/instance?api-version=2021-02-01" in urls
        assert not any("latest/api/token" in url for url in urls)

    def test_none_mode_skips_metadata(self, run_main, fake_network):
        assert run_main("-none") == 0

        assert [call[0] for call in fake_network.calls] == ["POST"]
        assert fake_network.pushes()[0][2]["data"] == HOSTNAMECTL_OUTPUT.encode()

    def test_log_appends_across_runs(self, run_main, log_file):
        run_main()
        run_main()

        assert log_file.read_text().count("Pushing metrics") == 2

    def test_unwritable_metrics_root(self, write_config, log_file, tmp_path, fake_hostnamectl,
                                     no_sleep, fake_network):
        blocker = tmp_path / "not_a_dir"
        blocker.write_text("")
        config = write_config(extra=f"metadata_logfile={log_file}\n")

        assert main(["-c", config, "-m", str(blocker / "metrics")]) == 1
        assert fake_network.pushes() == []


class TestReporterClose:
    """Both HTTP sessions are released when the reporter closes."""

    def test_close_releases_sessions(self, settings, reporter_logger):
        metadata_session = FakeSession([])
        push_session = FakeSession([])
        reporter = InstanceDataReporter(settings, reporter_logger, Platform.AWS,
                                        metadata_session=metadata_session,
                                        push_session=push_session)

        reporter.close()

        assert metadata_session.closed is True
        assert push_session.closed is True
