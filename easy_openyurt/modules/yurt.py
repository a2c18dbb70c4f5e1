"""OpenYurt control plane on top of a kubeadm cluster.

``yurt master init`` deploys the OpenYurt charts and raven, ``yurt master
expand`` turns an already joined worker into an edge (or cloud) node, and
``yurt worker join`` runs on that worker to route its kubelet through yurthub.
"""
import logging
from typing import List, Optional, Tuple

from ..config import Config, HostContext, PollSettings, YurtSettings
from ..exceptions import ProvisionError, ShellError
from .credentials import ClusterJoinCredential
from .environment import (
    YURT_DEPENDENCIES,
    InstalledComponentFlags,
    detect_components,
    install_packages,
    require_supported_distro,
)
from .extract import select_columns
from .pipeline import Pipeline, Step, StepContext
from .poller import poll_until
from .shell import CommandRunner, ShellInvocation
from .templates import (
    KUBEADM_KUBELET_DROPIN_PATH,
    KUBELET_DROPIN_ORIGINAL_ARGS,
    KUBELET_DROPIN_YURT_ARGS,
    KUBELET_KUBECONFIG_TEMPLATE,
    OPENYURT_KUBELET_CONF_PATH,
    YURTHUB_MANIFEST_PATH,
    render_yurthub_manifest,
)
from .workspace import ScopedWorkspace

logger = logging.getLogger("easy_openyurt.yurt")

CONTROL_PLANE_TAINTS = (
    "node-role.kubernetes.io/master:NoSchedule-",
    "node-role.kubernetes.io/control-plane-",
)

APP_MANAGER_STATUS = ShellInvocation("kubectl get pod -n kube-system --no-headers")
APP_MANAGER_READY = "1/1 Running"

EDGE_HUB_POD = "yurt-hub"


def install_dependencies(ctx: StepContext) -> None:
    install_packages(ctx.runner, ctx.host, YURT_DEPENDENCIES.get(ctx.host.distro, ""))


def remove_master_taints(ctx: StepContext) -> None:
    logger.warning("⚠️  Master node WILL also be treated as a cloud node!")
    for taint in CONTROL_PLANE_TAINTS:
        try:
            ctx.runner.run("kubectl taint nodes --all %s", taint)
        except ShellError as e:
            # a taint that is not present is reported as an error by kubectl
            logger.debug(f"Taint {taint} not removed: {e}")


def install_helm(ctx: StepContext) -> None:
    key = ctx.fetcher.fetch(Config.HELM_SIGNING_KEY_URL)
    ctx.runner.run(
        "sudo mkdir -p /usr/share/keyrings && cat %s | gpg --dearmor | sudo tee /usr/share/keyrings/helm.gpg > /dev/null",
        key,
    )
    ctx.runner.run(
        "echo \"deb [arch=$(dpkg --print-architecture) signed-by=/usr/share/keyrings/helm.gpg] %s\""
        " | sudo tee /etc/apt/sources.list.d/helm-stable-debian.list",
        Config.HELM_APT_REPO,
    )
    install_packages(ctx.runner, ctx.host, "helm")


def install_kustomize(ctx: StepContext) -> None:
    script = ctx.fetcher.fetch(Config.KUSTOMIZE_SCRIPT_URL)
    ctx.runner.run("chmod u+x %s && %s %s", script, script, ctx.workspace)
    ctx.runner.run("sudo cp %s /usr/local/bin", ctx.workspace / "kustomize")


def add_helm_repo(ctx: StepContext) -> None:
    ctx.runner.run("helm repo add openyurt %s && helm repo update openyurt", Config.OPENYURT_HELM_REPO)


def deploy_app_manager(ctx: StepContext) -> None:
    ctx.runner.run("helm upgrade --install yurt-app-manager -n kube-system openyurt/yurt-app-manager")


def wait_for_app_manager(ctx: StepContext) -> None:
    poll_until(
        ctx.runner,
        APP_MANAGER_STATUS,
        APP_MANAGER_READY,
        parse=lambda out: select_columns(out, "yurt-app-manager", (1, 2)),
        interval=ctx.poll.interval,
        max_attempts=ctx.poll.max_attempts,
        description="yurt-app-manager",
    )


def deploy_controller_manager(ctx: StepContext) -> None:
    ctx.runner.run("helm upgrade --install openyurt -n kube-system openyurt/openyurt")


def clone_raven_controller(ctx: StepContext) -> None:
    ctx.runner.run(
        "git clone --quiet %s %s",
        Config.RAVEN_CONTROLLER_REPO,
        ctx.workspace / "raven-controller-manager",
    )


def deploy_raven_controller(ctx: StepContext) -> None:
    ctx.runner.run(
        "cd %s && git checkout %s && make generate-deploy-yaml"
        " && kubectl apply -f _output/yamls/raven-controller-manager.yaml",
        ctx.workspace / "raven-controller-manager",
        ctx.settings.raven_version,
    )


def clone_raven_agent(ctx: StepContext) -> None:
    ctx.runner.run("git clone --quiet %s %s", Config.RAVEN_AGENT_REPO, ctx.workspace / "raven-agent")


def deploy_raven_agent(ctx: StepContext) -> None:
    ctx.runner.run(
        "cd %s && git checkout %s && FORWARD_NODE_IP=true make deploy",
        ctx.workspace / "raven-agent",
        ctx.settings.raven_version,
    )


def label_node(ctx: StepContext) -> None:
    settings = ctx.settings
    ctx.runner.run(
        "kubectl label node %s openyurt.io/is-edge-worker=%s --overwrite",
        settings.worker_node_name,
        "true" if settings.worker_as_edge else "false",
    )


def activate_autonomy(ctx: StepContext) -> None:
    ctx.runner.run(
        "kubectl annotate node %s node.beta.openyurt.io/autonomy=true --overwrite",
        ctx.settings.worker_node_name,
    )


def wait_for_node(ctx: StepContext) -> None:
    node = ctx.settings.worker_node_name
    poll_until(
        ctx.runner,
        ShellInvocation("kubectl get node %s --no-headers", (node,)),
        "Ready",
        parse=lambda out: select_columns(out, node, (1,)),
        interval=ctx.poll.interval,
        max_attempts=ctx.poll.max_attempts,
        description=f"node {node}",
    )


def parse_pod_listing(output: str) -> List[Tuple[str, str]]:
    """Turn ``NAMESPACE NAME`` rows into pairs, leaving out the edge hub."""
    pods = []
    for line in output.splitlines():
        columns = line.split()
        if len(columns) < 2 or EDGE_HUB_POD in columns[1]:
            continue
        pods.append((columns[0], columns[1]))
    return pods


def list_node_pods(ctx: StepContext) -> None:
    output = ctx.runner.run(
        "kubectl get pod -A --no-headers --field-selector spec.nodeName=%s,status.phase=Running"
        " -o custom-columns=NAMESPACE:.metadata.namespace,NAME:.metadata.name",
        ctx.settings.worker_node_name,
    )
    ctx.data["pods"] = parse_pod_listing(output)
    logger.info(f"Found {len(ctx.data['pods'])} pod(s) to restart on {ctx.settings.worker_node_name}")


def restart_node_pods(ctx: StepContext) -> None:
    for namespace, name in ctx.data.get("pods", []):
        logger.info(f"🔄 Restarting pod: {namespace} => {name}")
        ctx.runner.run("kubectl -n %s delete pod %s", namespace, name)


def setup_yurthub(ctx: StepContext) -> None:
    credential = ctx.credential
    manifest = ctx.workspace / "yurthub-ack.yaml"
    manifest.write_text(render_yurthub_manifest(credential.endpoint, credential.token), encoding='utf-8')
    ctx.runner.run(
        "sudo mkdir -p $(dirname %s) && sudo cp %s %s",
        YURTHUB_MANIFEST_PATH,
        manifest,
        YURTHUB_MANIFEST_PATH,
    )


def configure_kubelet(ctx: StepContext) -> None:
    kubeconfig = ctx.workspace / "kubelet.conf"
    kubeconfig.write_text(KUBELET_KUBECONFIG_TEMPLATE, encoding='utf-8')
    ctx.runner.run(
        "sudo mkdir -p $(dirname %s) && sudo cp %s %s",
        OPENYURT_KUBELET_CONF_PATH,
        kubeconfig,
        OPENYURT_KUBELET_CONF_PATH,
    )
    ctx.runner.run(
        "sudo sed -i 's|%s|%s|g' %s",
        KUBELET_DROPIN_ORIGINAL_ARGS,
        KUBELET_DROPIN_YURT_ARGS,
        KUBEADM_KUBELET_DROPIN_PATH,
    )


def restart_kubelet(ctx: StepContext) -> None:
    ctx.runner.run("sudo systemctl daemon-reload && sudo systemctl restart kubelet")


MASTER_INIT_STEPS = (
    Step("Installing dependencies", install_dependencies),
    Step("Removing control-plane taints", remove_master_taints, when=lambda ctx: ctx.settings.master_as_cloud),
    Step("Installing Helm", install_helm, when=lambda ctx: not ctx.flags.helm),
    Step("Installing kustomize", install_kustomize, when=lambda ctx: not ctx.flags.kustomize),
    Step("Adding OpenYurt repo with helm", add_helm_repo),
    Step("Deploying yurt-app-manager", deploy_app_manager),
    Step("Waiting for yurt-app-manager to be ready", wait_for_app_manager),
    Step("Deploying yurt-controller-manager", deploy_controller_manager),
    Step("Cloning repo: raven-controller-manager", clone_raven_controller),
    Step("Deploying raven-controller-manager", deploy_raven_controller),
    Step("Cloning repo: raven-agent", clone_raven_agent),
    Step("Deploying raven-agent", deploy_raven_agent),
)

MASTER_EXPAND_STEPS = (
    Step("Labeling worker node", label_node),
    Step("Activating the node autonomous mode", activate_autonomy),
    Step("Waiting for worker node to be ready", wait_for_node),
    Step("Listing pods on the worker node", list_node_pods),
    Step("Restarting pods on the worker node", restart_node_pods),
)

WORKER_JOIN_STEPS = (
    Step("Setting up Yurthub", setup_yurthub),
    Step("Configuring kubelet", configure_kubelet),
    Step("Restarting kubelet", restart_kubelet),
)


def _require_node_name(settings: YurtSettings) -> None:
    if not settings.worker_node_name:
        raise ProvisionError("worker node name required")


def yurt_master_init(
    settings: YurtSettings,
    host: HostContext,
    runner: Optional[CommandRunner] = None,
    *,
    flags: Optional[InstalledComponentFlags] = None,
    poll: Optional[PollSettings] = None,
    workspace: Optional[ScopedWorkspace] = None,
) -> None:
    """Deploy the OpenYurt control plane from the master node."""
    Pipeline(
        "yurt master init",
        MASTER_INIT_STEPS,
        preflight=[lambda: require_supported_distro(host)],
    ).run(
        runner or CommandRunner(),
        host,
        settings,
        flags=flags if flags is not None else detect_components(),
        poll=poll,
        workspace=workspace,
    )
    logger.info("✅ Successfully init OpenYurt cluster master node!")


def yurt_master_expand(
    settings: YurtSettings,
    host: HostContext,
    runner: Optional[CommandRunner] = None,
    *,
    poll: Optional[PollSettings] = None,
    workspace: Optional[ScopedWorkspace] = None,
) -> None:
    """Enroll an already joined worker as an edge or cloud node."""
    Pipeline(
        "yurt master expand",
        MASTER_EXPAND_STEPS,
        preflight=[
            lambda: require_supported_distro(host),
            lambda: _require_node_name(settings),
        ],
    ).run(runner or CommandRunner(), host, settings, poll=poll, workspace=workspace)
    logger.info(f"✅ Successfully expand OpenYurt to node [{settings.worker_node_name}]!")


def yurt_worker_join(
    credential: ClusterJoinCredential,
    host: HostContext,
    runner: Optional[CommandRunner] = None,
    *,
    workspace: Optional[ScopedWorkspace] = None,
) -> None:
    """Point this worker's kubelet at a local yurthub.

    The CA cert hash is not needed here, only address, port and token.
    """
    Pipeline(
        "yurt worker join",
        WORKER_JOIN_STEPS,
        preflight=[
            lambda: require_supported_distro(host),
            lambda: credential.validate(require_hash=False),
        ],
    ).run(runner or CommandRunner(), host, credential=credential, workspace=workspace)
    logger.info("✅ Successfully joined OpenYurt cluster!")
