import typer

from ..config import Config, SystemSettings
from ..modules.environment import detect_host
from ..modules.system import system_init
from . import abort_on_failure

app = typer.Typer(help="Prepare the base system (container runtime, kubeadm) on a node")
master_app = typer.Typer(help="Master node operations")
worker_app = typer.Typer(help="Worker node operations")
app.add_typer(master_app, name="master")
app.add_typer(worker_app, name="worker")


def _init(
    go_version: str,
    containerd_version: str,
    runc_version: str,
    cni_plugins_version: str,
    kubectl_version: str,
    kubeadm_version: str,
    kubelet_version: str,
    k8s_version: str,
) -> None:
    settings = SystemSettings(
        go_version=go_version,
        containerd_version=containerd_version,
        runc_version=runc_version,
        cni_plugins_version=cni_plugins_version,
        kubectl_version=kubectl_version,
        kubeadm_version=kubeadm_version,
        kubelet_version=kubelet_version,
        kubernetes_version=k8s_version,
    )
    with abort_on_failure("init system"):
        system_init(settings, detect_host())


@master_app.command("init")
def master_init(
    go_version: str = typer.Option(Config.GO_VERSION, help="Golang version"),
    containerd_version: str = typer.Option(Config.CONTAINERD_VERSION, help="Containerd version"),
    runc_version: str = typer.Option(Config.RUNC_VERSION, help="Runc version"),
    cni_plugins_version: str = typer.Option(Config.CNI_PLUGINS_VERSION, help="CNI plugins version"),
    kubectl_version: str = typer.Option(Config.KUBE_PACKAGE_VERSION, help="Kubectl package version"),
    kubeadm_version: str = typer.Option(Config.KUBE_PACKAGE_VERSION, help="Kubeadm package version"),
    kubelet_version: str = typer.Option(Config.KUBE_PACKAGE_VERSION, help="Kubelet package version"),
    k8s_version: str = typer.Option(Config.KUBERNETES_VERSION, help="Kubernetes release the package repository tracks"),
):
    """Initialize the base system of a master node."""
    _init(go_version, containerd_version, runc_version, cni_plugins_version,
          kubectl_version, kubeadm_version, kubelet_version, k8s_version)


@worker_app.command("init")
def worker_init(
    go_version: str = typer.Option(Config.GO_VERSION, help="Golang version"),
    containerd_version: str = typer.Option(Config.CONTAINERD_VERSION, help="Containerd version"),
    runc_version: str = typer.Option(Config.RUNC_VERSION, help="Runc version"),
    cni_plugins_version: str = typer.Option(Config.CNI_PLUGINS_VERSION, help="CNI plugins version"),
    kubectl_version: str = typer.Option(Config.KUBE_PACKAGE_VERSION, help="Kubectl package version"),
    kubeadm_version: str = typer.Option(Config.KUBE_PACKAGE_VERSION, help="Kubeadm package version"),
    kubelet_version: str = typer.Option(Config.KUBE_PACKAGE_VERSION, help="Kubelet package version"),
    k8s_version: str = typer.Option(Config.KUBERNETES_VERSION, help="Kubernetes release the package repository tracks"),
):
    """Initialize the base system of a worker node."""
    _init(go_version, containerd_version, runc_version, cni_plugins_version,
          kubectl_version, kubeadm_version, kubelet_version, k8s_version)
