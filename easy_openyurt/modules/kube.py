"""Kubernetes cluster bootstrap with kubeadm."""
import logging
from typing import Optional

from ..config import Config, HostContext, KubeSettings
from .credentials import ClusterJoinCredential, write_credential
from .environment import require_supported_distro
from .extract import CA_CERT_HASH, JOIN_COMMAND, extract_fields
from .pipeline import Pipeline, Step, StepContext
from .shell import CommandRunner
from .workspace import ScopedWorkspace

logger = logging.getLogger("easy_openyurt.kube")

MASTER_NODE_INFO = "masterNodeInfo"


def pull_images(ctx: StepContext) -> None:
    settings = ctx.settings
    command = "sudo kubeadm config images pull --kubernetes-version %s"
    params = [settings.k8s_version]
    if settings.alternative_image_repo:
        command += " --image-repository %s"
        params.append(settings.alternative_image_repo)
    ctx.runner.run(command, *params)


def kubeadm_init(ctx: StepContext) -> None:
    settings = ctx.settings
    command = "set -o pipefail && sudo kubeadm init --kubernetes-version %s --pod-network-cidr=\"%s\""
    params = [settings.k8s_version, settings.pod_network_cidr]
    if settings.alternative_image_repo:
        command += " --image-repository %s"
        params.append(settings.alternative_image_repo)
    if settings.apiserver_advertise_address:
        command += " --apiserver-advertise-address=%s"
        params.append(settings.apiserver_advertise_address)
    command += " | tee %s"
    params.append(ctx.workspace / MASTER_NODE_INFO)
    ctx.runner.run(command, *params)


def configure_kubectl(ctx: StepContext) -> None:
    home = ctx.host.home_dir
    ctx.runner.run(
        "mkdir -p %s/.kube && sudo cp -f /etc/kubernetes/admin.conf %s/.kube/config"
        " && sudo chown $(id -u):$(id -g) %s/.kube/config",
        home,
        home,
        home,
    )


def install_pod_network(ctx: StepContext) -> None:
    ctx.runner.run("kubectl apply -f %s", Config.POD_NETWORK_MANIFEST_URL)


def harvest_credential(ctx: StepContext) -> None:
    output = (ctx.workspace / MASTER_NODE_INFO).read_text(encoding='utf-8')
    address, port, token = extract_fields(output, JOIN_COMMAND)
    (token_hash,) = extract_fields(output, CA_CERT_HASH)
    ctx.credential = ClusterJoinCredential(
        advertise_address=address,
        port=port,
        token=token,
        ca_cert_hash=token_hash,
    ).validate()


def persist_credential(ctx: StepContext) -> None:
    path = ctx.host.current_dir / ctx.settings.credential_file
    ctx.data["credential_file"] = write_credential(path, ctx.credential)


def kubeadm_join(ctx: StepContext) -> None:
    credential = ctx.credential
    ctx.runner.run(
        "sudo kubeadm join %s --token %s --discovery-token-ca-cert-hash %s",
        credential.endpoint,
        credential.token,
        credential.ca_cert_hash,
    )


MASTER_INIT_STEPS = (
    Step("Pre-pulling required images", pull_images),
    Step("Deploying Kubernetes", kubeadm_init),
    Step("Making kubectl work for non-root user", configure_kubectl),
    Step("Installing pod network", install_pod_network),
    Step("Extracting master node information from logs", harvest_credential),
    Step("Writing master node information", persist_credential),
)

WORKER_JOIN_STEPS = (
    Step("Joining Kubernetes cluster", kubeadm_join),
)


def kube_master_init(
    settings: KubeSettings,
    host: HostContext,
    runner: Optional[CommandRunner] = None,
    *,
    workspace: Optional[ScopedWorkspace] = None,
) -> ClusterJoinCredential:
    """Bootstrap the control plane and write the join credential file.

    Returns:
        The credential workers need to join
    """
    ctx = Pipeline(
        "kube master init",
        MASTER_INIT_STEPS,
        preflight=[lambda: require_supported_distro(host)],
    ).run(runner or CommandRunner(), host, settings, workspace=workspace)
    logger.info(f"✅ Master node key information has been written to {ctx.data['credential_file']}")
    return ctx.credential


def kube_worker_join(
    credential: ClusterJoinCredential,
    host: HostContext,
    runner: Optional[CommandRunner] = None,
    *,
    workspace: Optional[ScopedWorkspace] = None,
) -> None:
    """Join this node to the cluster described by ``credential``.

    Raises:
        UnsupportedDistroError: Before any command runs, on an unsupported OS
        CredentialError: Before any command runs, if a field is missing
    """
    Pipeline(
        "kube worker join",
        WORKER_JOIN_STEPS,
        preflight=[
            lambda: require_supported_distro(host),
            lambda: credential.validate(require_hash=True),
        ],
    ).run(runner or CommandRunner(), host, credential=credential, workspace=workspace)
    logger.info("✅ Successfully joined Kubernetes cluster!")
