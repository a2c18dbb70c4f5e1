from typing import Optional

import typer

from ..config import Config, KubeSettings
from ..modules.credentials import resolve_credential
from ..modules.environment import detect_host
from ..modules.kube import kube_master_init, kube_worker_join
from . import abort_on_failure

app = typer.Typer(help="Bootstrap or join a Kubernetes cluster with kubeadm")
master_app = typer.Typer(help="Master node operations")
worker_app = typer.Typer(help="Worker node operations")
app.add_typer(master_app, name="master")
app.add_typer(worker_app, name="worker")


@master_app.command("init")
def master_init(
    k8s_version: str = typer.Option(Config.KUBERNETES_VERSION, help="Kubernetes version"),
    alternative_image_repo: str = typer.Option("", help="Alternative image repository"),
    apiserver_advertise_address: str = typer.Option("", help="Kubernetes API server advertise address"),
    pod_network_cidr: str = typer.Option(Config.POD_NETWORK_CIDR, help="Pod network CIDR"),
    credential_file: str = typer.Option(Config.CREDENTIAL_FILE, help="Where to write the join credentials"),
):
    """Initialize the Kubernetes control plane on this node."""
    settings = KubeSettings(
        k8s_version=k8s_version,
        alternative_image_repo=alternative_image_repo,
        apiserver_advertise_address=apiserver_advertise_address,
        pod_network_cidr=pod_network_cidr,
        credential_file=credential_file,
    )
    with abort_on_failure("deploy Kubernetes"):
        credential = kube_master_init(settings, detect_host())
    typer.echo(f"kubeadm join {credential.endpoint} --token {credential.token} "
               f"--discovery-token-ca-cert-hash {credential.ca_cert_hash}")


@worker_app.command("join")
def worker_join(
    apiserver_advertise_address: Optional[str] = typer.Option(None, help="Kubernetes API server advertise address (**REQUIRED**)"),
    apiserver_port: Optional[str] = typer.Option(None, help=f"Kubernetes API server port [default: {Config.APISERVER_PORT}]"),
    apiserver_token: Optional[str] = typer.Option(None, help="Kubernetes API server token (**REQUIRED**)"),
    apiserver_token_hash: Optional[str] = typer.Option(None, help="Kubernetes API server token hash (**REQUIRED**)"),
    credential_file: Optional[str] = typer.Option(None, help="Read missing values from a masterKey.yaml written by the master"),
):
    """Join this node to an existing Kubernetes cluster."""
    with abort_on_failure("join Kubernetes cluster"):
        credential = resolve_credential(
            advertise_address=apiserver_advertise_address,
            port=apiserver_port,
            token=apiserver_token,
            ca_cert_hash=apiserver_token_hash,
            credential_file=credential_file,
            require_hash=True,
        )
        kube_worker_join(credential, detect_host())
