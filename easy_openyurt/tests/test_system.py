import pytest

from easy_openyurt.config import SystemSettings
from easy_openyurt.exceptions import StepFailed, UnsupportedDistroError
from easy_openyurt.modules import system
from easy_openyurt.modules.environment import InstalledComponentFlags
from easy_openyurt.modules.system import system_init

ALL_INSTALLED = InstalledComponentFlags(go=True, containerd=True, runc=True, cni_plugins=True)


@pytest.fixture(autouse=True)
def no_auto_upgrades(tmp_path, monkeypatch):
    monkeypatch.setattr(system, "AUTO_UPGRADES_CONF", str(tmp_path / "20auto-upgrades"))
    return tmp_path / "20auto-upgrades"


def test_fresh_host_installs_everything(runner, host, workspace):
    system_init(SystemSettings(), host, runner, flags=InstalledComponentFlags(), workspace=workspace)

    downloads = [c.rsplit(" ", 1)[1] for c in runner.ran("^curl -fsSL --output")]
    assert downloads == [
        "https://go.dev/dl/go1.18.10.linux-amd64.tar.gz",
        "https://github.com/containerd/containerd/releases/download/v1.6.18/containerd-1.6.18-linux-amd64.tar.gz",
        "https://raw.githubusercontent.com/containerd/containerd/main/containerd.service",
        "https://github.com/opencontainers/runc/releases/download/v1.1.4/runc.amd64",
        "https://github.com/containernetworking/plugins/releases/download/v1.2.0/cni-plugins-linux-amd64-v1.2.0.tgz",
    ]
    assert runner.ran("SystemdCgroup = true")
    assert runner.ran("pkgs.k8s.io/core:/stable:/v1.28/deb/")
    assert runner.ran("kubeadm=1.28.2-1.1 kubelet=1.28.2-1.1 kubectl=1.28.2-1.1")
    assert runner.commands[-1] == "sudo apt-mark hold kubelet kubeadm kubectl"
    assert not workspace.last_path.exists()


def test_installed_components_are_skipped(runner, host, workspace):
    system_init(SystemSettings(), host, runner, flags=ALL_INSTALLED, workspace=workspace)
    assert not runner.ran("^curl -fsSL --output")
    assert runner.ran("swapoff -a")


def test_auto_upgrades_disabled_when_configured(runner, host, workspace, no_auto_upgrades):
    no_auto_upgrades.write_text('APT::Periodic::Unattended-Upgrade "1";\n')
    system_init(SystemSettings(), host, runner, flags=ALL_INSTALLED, workspace=workspace)
    assert "20auto-upgrades" in runner.commands[0]


def test_go_profile_includes_zsh_when_present(runner, host, workspace):
    runner.on("command -v zsh", "/usr/bin/zsh")
    flags = InstalledComponentFlags(containerd=True, runc=True, cni_plugins=True)
    system_init(SystemSettings(), host, runner, flags=flags, workspace=workspace)
    profiles = runner.ran("/usr/local/go/bin' >>")
    assert [c.rsplit(" ", 1)[1] for c in profiles] == [
        str(host.home_dir / ".bashrc"),
        str(host.home_dir / ".zshrc"),
    ]


def test_unsupported_distro(runner, host, workspace):
    rhel = host.__class__("rhel", host.arch, host.home_dir, host.current_dir)
    with pytest.raises(UnsupportedDistroError):
        system_init(SystemSettings(), rhel, runner, flags=ALL_INSTALLED, workspace=workspace)
    assert runner.commands == []
    assert workspace.created == 0


def test_failing_download_aborts(runner, host, workspace):
    runner.fail("runc.amd64", stderr="curl: (22) The requested URL returned error: 404", exit_code=22)
    with pytest.raises(StepFailed) as excinfo:
        system_init(SystemSettings(), host, runner, flags=InstalledComponentFlags(go=True), workspace=workspace)
    assert excinfo.value.step == "Installing runc"
    assert not runner.ran("SystemdCgroup")
    assert workspace.destroyed == 1
