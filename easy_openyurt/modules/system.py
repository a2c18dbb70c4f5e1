"""Base system preparation for master and worker nodes.

Turns a fresh Ubuntu host into one kubeadm can work with: swap off,
containerd + runc + CNI plugins, systemd cgroups, bridged traffic visible to
iptables, and pinned kubeadm/kubelet/kubectl packages.
"""
import logging
import os
from typing import Optional

from ..config import Config, HostContext, SystemSettings
from .environment import (
    SYSTEM_DEPENDENCIES,
    InstalledComponentFlags,
    detect_components,
    install_packages,
    require_supported_distro,
)
from .pipeline import Pipeline, Step, StepContext
from .shell import CommandRunner
from .workspace import ScopedWorkspace

logger = logging.getLogger("easy_openyurt.system")

AUTO_UPGRADES_CONF = "/etc/apt/apt.conf.d/20auto-upgrades"
KUBE_KEYRING = "/etc/apt/keyrings/kubernetes-apt-keyring.gpg"
KUBE_SOURCES_LIST = "/etc/apt/sources.list.d/kubernetes.list"


def turn_off_automatic_upgrade(ctx: StepContext) -> None:
    if ctx.host.distro != "ubuntu" or not os.path.exists(AUTO_UPGRADES_CONF):
        logger.debug("Unattended upgrades not configured, nothing to turn off")
        return
    ctx.runner.run("sudo sed -i 's/\"1\"/\"0\"/g' %s", AUTO_UPGRADES_CONF)


def install_dependencies(ctx: StepContext) -> None:
    install_packages(ctx.runner, ctx.host, SYSTEM_DEPENDENCIES.get(ctx.host.distro, ""))


def disable_swap(ctx: StepContext) -> None:
    ctx.runner.run("sudo swapoff -a && sudo cp /etc/fstab /etc/fstab.old")


def comment_swap_in_fstab(ctx: StepContext) -> None:
    # uncomment first so entries already commented are not prefixed twice
    ctx.runner.run(
        "sudo sed -i 's/#\\s*\\(.*swap.*\\)/\\1/g' /etc/fstab && sudo sed -i 's/.*swap.*/# &/g' /etc/fstab"
    )


def install_go(ctx: StepContext) -> None:
    version = ctx.settings.go_version
    archive = ctx.fetcher.fetch(Config.GO_URL_TEMPLATE, version, ctx.host.arch)
    ctx.runner.run("sudo rm -rf /usr/local/go && sudo tar -C /usr/local -xzf %s", archive)
    profiles = [ctx.host.home_dir / ".bashrc"]
    if ctx.runner.run("command -v zsh || true"):
        profiles.append(ctx.host.home_dir / ".zshrc")
    for profile in profiles:
        ctx.runner.run(
            "grep -qs '/usr/local/go/bin' %s || echo 'export PATH=$PATH:/usr/local/go/bin' >> %s",
            profile,
            profile,
        )


def install_containerd(ctx: StepContext) -> None:
    version = ctx.settings.containerd_version
    archive = ctx.fetcher.fetch(Config.CONTAINERD_URL_TEMPLATE, version, version, ctx.host.arch)
    ctx.runner.run("sudo tar Cxzvf /usr/local %s", archive)
    unit = ctx.fetcher.fetch(Config.CONTAINERD_UNIT_URL)
    ctx.runner.run(
        "sudo cp %s /lib/systemd/system/ && sudo systemctl daemon-reload && sudo systemctl enable --now containerd",
        unit,
    )


def install_runc(ctx: StepContext) -> None:
    binary = ctx.fetcher.fetch(Config.RUNC_URL_TEMPLATE, ctx.settings.runc_version, ctx.host.arch)
    ctx.runner.run("sudo install -m 755 %s /usr/local/sbin/runc", binary)


def install_cni_plugins(ctx: StepContext) -> None:
    version = ctx.settings.cni_plugins_version
    archive = ctx.fetcher.fetch(Config.CNI_PLUGINS_URL_TEMPLATE, version, ctx.host.arch, version)
    ctx.runner.run("sudo mkdir -p /opt/cni/bin && sudo tar Cxzvf /opt/cni/bin %s", archive)


def configure_cgroup_driver(ctx: StepContext) -> None:
    config_toml = ctx.workspace / "config.toml"
    ctx.runner.run(
        "containerd config default > %s && sudo mkdir -p /etc/containerd && sudo cp %s /etc/containerd/config.toml"
        " && sudo sed -i 's/SystemdCgroup = false/SystemdCgroup = true/g' /etc/containerd/config.toml"
        " && sudo systemctl restart containerd",
        config_toml,
        config_toml,
    )


def enable_ip_forwarding(ctx: StepContext) -> None:
    ctx.runner.run("sudo modprobe br_netfilter && sudo sysctl -w net.ipv4.ip_forward=1")


def persist_kernel_settings(ctx: StepContext) -> None:
    ctx.runner.run(
        "echo 'br_netfilter' | sudo tee /etc/modules-load.d/netfilter.conf"
        " && echo 'net.ipv4.ip_forward=1' | sudo tee /etc/sysctl.d/99-kubernetes.conf"
    )


def add_kubernetes_repository(ctx: StepContext) -> None:
    repo = Config.KUBE_APT_REPO_TEMPLATE % ctx.settings.kubernetes_minor
    ctx.runner.run(
        "sudo mkdir -p /etc/apt/keyrings && curl -fsSL %sRelease.key | sudo gpg --dearmor --yes -o %s"
        " && echo 'deb [signed-by=%s] %s /' | sudo tee %s",
        repo,
        KUBE_KEYRING,
        KUBE_KEYRING,
        repo,
        KUBE_SOURCES_LIST,
    )


def install_kube_tools(ctx: StepContext) -> None:
    settings = ctx.settings
    install_packages(
        ctx.runner,
        ctx.host,
        f"kubeadm={settings.kubeadm_version} kubelet={settings.kubelet_version} kubectl={settings.kubectl_version}",
    )


def hold_kube_tools(ctx: StepContext) -> None:
    ctx.runner.run("sudo apt-mark hold kubelet kubeadm kubectl")


SYSTEM_INIT_STEPS = (
    Step("Turning off automatic upgrade", turn_off_automatic_upgrade),
    Step("Installing dependencies", install_dependencies),
    Step("Disabling swap", disable_swap),
    Step("Modifying fstab", comment_swap_in_fstab),
    Step("Installing Golang", install_go, when=lambda ctx: not ctx.flags.go),
    Step("Installing containerd", install_containerd, when=lambda ctx: not ctx.flags.containerd),
    Step("Installing runc", install_runc, when=lambda ctx: not ctx.flags.runc),
    Step("Installing CNI plugins", install_cni_plugins, when=lambda ctx: not ctx.flags.cni_plugins),
    Step("Configuring the systemd cgroup driver", configure_cgroup_driver),
    Step("Enabling IP forwarding & br_netfilter", enable_ip_forwarding),
    Step("Ensuring boot-resistant kernel settings", persist_kernel_settings),
    Step("Adding the Kubernetes apt repository", add_kubernetes_repository),
    Step("Installing kubeadm, kubelet, kubectl", install_kube_tools),
    Step("Locking kubeadm, kubelet, kubectl version", hold_kube_tools),
)


def system_init(
    settings: SystemSettings,
    host: HostContext,
    runner: Optional[CommandRunner] = None,
    *,
    flags: Optional[InstalledComponentFlags] = None,
    workspace: Optional[ScopedWorkspace] = None,
) -> None:
    """Prepare the host for Kubernetes; identical for master and worker.

    Raises:
        ProvisionError: If the distro is unsupported or a step fails
    """
    pipeline = Pipeline(
        "system init",
        SYSTEM_INIT_STEPS,
        preflight=[lambda: require_supported_distro(host)],
    )
    pipeline.run(
        runner or CommandRunner(),
        host,
        settings,
        flags=flags if flags is not None else detect_components(),
        workspace=workspace,
    )
    logger.info("✅ Init System Successfully!")
