from pathlib import Path
import pytest

from distbundle.errors import ConfigurationError
from distbundle.supervisor import LaunchConfig, PidFile, load_launch_config


def test_pid_file_round_trip(tmp_path: Path):
    pid_file = PidFile(tmp_path / "run" / "svc.pid")
    assert pid_file.read() is None

    pid_file.write(4242)

    assert pid_file.path.read_text() == "4242\n"
    assert pid_file.read() == 4242
    pid_file.delete()
    assert not pid_file.exists()
    # Deleting twice is fine.
    pid_file.delete()


@pytest.mark.parametrize("content", ["", "not-a-pid", "0", "-5", "12 34"])
def test_invalid_pid_file_reads_as_absent_and_is_kept(tmp_path: Path, content):
    path = tmp_path / "svc.pid"
    path.write_text(content)

    assert PidFile(path).read() is None
    assert path.read_text() == content


def test_pid_file_tolerates_surrounding_whitespace(tmp_path: Path):
    path = tmp_path / "svc.pid"
    path.write_text("  77 \n\n")

    assert PidFile(path).read() == 77


def write_launcher(bundle_root: Path, text: str) -> None:
    path = bundle_root / "service" / "bin" / "launcher.yml"
    path.parent.mkdir(parents=True)
    path.write_text(text)


def test_load_launch_config(tmp_path: Path):
    write_launcher(
        tmp_path,
        "serviceName: svc\nentrypoint: svc.main\nargs: [--port, 8080]\nenv:\n  MODE: prod\n  WORKERS: 4\n",
    )

    assert load_launch_config(tmp_path) == LaunchConfig(
        service_name="svc", entrypoint="svc.main", args=("--port", "8080"), env={"MODE": "prod", "WORKERS": "4"}
    )


@pytest.mark.parametrize("text", [
    "- just\n- a list\n",
    "serviceName: svc\n",
    "entrypoint: app\n",
    "serviceName: [unclosed\n",
])
def test_bad_launch_config_is_a_configuration_error(tmp_path: Path, text):
    write_launcher(tmp_path, text)

    with pytest.raises(ConfigurationError):
        load_launch_config(tmp_path)


def test_missing_launch_config_is_a_configuration_error(tmp_path: Path):
    with pytest.raises(ConfigurationError) as e:
        load_launch_config(tmp_path)
    assert "bundle root" in str(e.value)
