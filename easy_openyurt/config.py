"""Configuration management for the easy_openyurt application."""
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional
from dotenv import load_dotenv

# Load environment variables from .env file if it exists
load_dotenv()


def _optional_int(value: str) -> Optional[int]:
    value = value.strip()
    if not value or int(value) <= 0:
        return None
    return int(value)


class Config:
    """Application configuration with sensible defaults."""

    # Component versions
    GO_VERSION: str = os.getenv("GO_VERSION", "1.18.10")
    CONTAINERD_VERSION: str = os.getenv("CONTAINERD_VERSION", "1.6.18")
    RUNC_VERSION: str = os.getenv("RUNC_VERSION", "1.1.4")
    CNI_PLUGINS_VERSION: str = os.getenv("CNI_PLUGINS_VERSION", "1.2.0")
    KUBERNETES_VERSION: str = os.getenv("KUBERNETES_VERSION", "1.28.2")
    KUBE_PACKAGE_VERSION: str = os.getenv("KUBE_PACKAGE_VERSION", "1.28.2-1.1")
    RAVEN_VERSION: str = os.getenv("RAVEN_VERSION", "v0.3.0")

    # Download locations (%s placeholders are filled in by the fetcher)
    GO_URL_TEMPLATE: str = os.getenv(
        "GO_URL_TEMPLATE", "https://go.dev/dl/go%s.linux-%s.tar.gz"
    )
    CONTAINERD_URL_TEMPLATE: str = os.getenv(
        "CONTAINERD_URL_TEMPLATE",
        "https://github.com/containerd/containerd/releases/download/v%s/containerd-%s-linux-%s.tar.gz",
    )
    CONTAINERD_UNIT_URL: str = os.getenv(
        "CONTAINERD_UNIT_URL",
        "https://raw.githubusercontent.com/containerd/containerd/main/containerd.service",
    )
    RUNC_URL_TEMPLATE: str = os.getenv(
        "RUNC_URL_TEMPLATE",
        "https://github.com/opencontainers/runc/releases/download/v%s/runc.%s",
    )
    CNI_PLUGINS_URL_TEMPLATE: str = os.getenv(
        "CNI_PLUGINS_URL_TEMPLATE",
        "https://github.com/containernetworking/plugins/releases/download/v%s/cni-plugins-linux-%s-v%s.tgz",
    )
    KUBE_APT_REPO_TEMPLATE: str = os.getenv(
        "KUBE_APT_REPO_TEMPLATE", "https://pkgs.k8s.io/core:/stable:/v%s/deb/"
    )
    POD_NETWORK_MANIFEST_URL: str = os.getenv(
        "POD_NETWORK_MANIFEST_URL",
        "https://github.com/flannel-io/flannel/releases/latest/download/kube-flannel.yml",
    )
    HELM_SIGNING_KEY_URL: str = os.getenv(
        "HELM_SIGNING_KEY_URL",
        "https://packages.buildkite.com/helm-linux/helm-debian/gpgkey",
    )
    HELM_APT_REPO: str = os.getenv(
        "HELM_APT_REPO",
        "https://packages.buildkite.com/helm-linux/helm-debian/any/ any main",
    )
    KUSTOMIZE_SCRIPT_URL: str = os.getenv(
        "KUSTOMIZE_SCRIPT_URL",
        "https://raw.githubusercontent.com/kubernetes-sigs/kustomize/master/hack/install_kustomize.sh",
    )
    OPENYURT_HELM_REPO: str = os.getenv(
        "OPENYURT_HELM_REPO", "https://openyurtio.github.io/openyurt-helm"
    )
    RAVEN_CONTROLLER_REPO: str = os.getenv(
        "RAVEN_CONTROLLER_REPO", "https://github.com/openyurtio/raven-controller-manager.git"
    )
    RAVEN_AGENT_REPO: str = os.getenv(
        "RAVEN_AGENT_REPO", "https://github.com/openyurtio/raven.git"
    )

    # Cluster defaults
    POD_NETWORK_CIDR: str = os.getenv("POD_NETWORK_CIDR", "10.244.0.0/16")
    APISERVER_PORT: str = os.getenv("APISERVER_PORT", "6443")
    CREDENTIAL_FILE: str = os.getenv("CREDENTIAL_FILE", "masterKey.yaml")

    # Convergence polling (0 or empty means poll until converged)
    POLL_INTERVAL: float = float(os.getenv("POLL_INTERVAL", "1.0"))
    POLL_MAX_ATTEMPTS: Optional[int] = _optional_int(os.getenv("POLL_MAX_ATTEMPTS", ""))

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()
    LOG_FORMAT: str = os.getenv(
        "LOG_FORMAT",
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )
    LOG_DIR: str = os.getenv("EASY_OPENYURT_LOG_DIR", ".")


@dataclass(frozen=True)
class HostContext:
    """Facts about the machine the orchestrator runs on."""
    distro: str
    arch: str
    home_dir: Path
    current_dir: Path


@dataclass(frozen=True)
class PollSettings:
    """Interval and bound for convergence polling."""
    interval: float = Config.POLL_INTERVAL
    max_attempts: Optional[int] = Config.POLL_MAX_ATTEMPTS


@dataclass(frozen=True)
class SystemSettings:
    """Versions used by `system <role> init`."""
    go_version: str = Config.GO_VERSION
    containerd_version: str = Config.CONTAINERD_VERSION
    runc_version: str = Config.RUNC_VERSION
    cni_plugins_version: str = Config.CNI_PLUGINS_VERSION
    kubectl_version: str = Config.KUBE_PACKAGE_VERSION
    kubeadm_version: str = Config.KUBE_PACKAGE_VERSION
    kubelet_version: str = Config.KUBE_PACKAGE_VERSION
    kubernetes_version: str = Config.KUBERNETES_VERSION

    @property
    def kubernetes_minor(self) -> str:
        """Minor release (``1.28``) used to select the package repository."""
        return ".".join(self.kubernetes_version.lstrip("v").split(".")[:2])


@dataclass(frozen=True)
class KubeSettings:
    """Options for `kube master init`."""
    k8s_version: str = Config.KUBERNETES_VERSION
    alternative_image_repo: str = ""
    apiserver_advertise_address: str = ""
    pod_network_cidr: str = Config.POD_NETWORK_CIDR
    credential_file: str = Config.CREDENTIAL_FILE


@dataclass(frozen=True)
class YurtSettings:
    """Options for the `yurt` operations."""
    master_as_cloud: bool = True
    worker_node_name: str = ""
    worker_as_edge: bool = True
    raven_version: str = Config.RAVEN_VERSION
