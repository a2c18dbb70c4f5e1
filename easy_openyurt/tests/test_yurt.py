import pytest

from easy_openyurt.config import PollSettings, YurtSettings
from easy_openyurt.exceptions import (
    ConvergenceTimeout,
    CredentialError,
    ProvisionError,
    StepFailed,
    UnsupportedDistroError,
)
from easy_openyurt.modules.credentials import ClusterJoinCredential
from easy_openyurt.modules.environment import InstalledComponentFlags
from easy_openyurt.modules.templates import (
    KUBELET_DROPIN_ORIGINAL_ARGS,
    KUBELET_DROPIN_YURT_ARGS,
    YURTHUB_MANIFEST_PATH,
)
from easy_openyurt.modules.yurt import (
    parse_pod_listing,
    yurt_master_expand,
    yurt_master_init,
    yurt_worker_join,
)

INSTALLED = InstalledComponentFlags(helm=True, kustomize=True)
FAST = PollSettings(interval=0, max_attempts=None)


def app_manager_listing(status):
    return f"coredns-5dd5756b68-7xk2q 1/1 Running 0 1m\nyurt-app-manager-6f7d8c9b5-pq2lm {status} 0 5s"


def test_master_init(runner, host, workspace):
    runner.on("kubectl get pod -n kube-system", app_manager_listing("0/1 Pending"), app_manager_listing("1/1 Running"))

    yurt_master_init(YurtSettings(), host, runner, flags=INSTALLED, poll=FAST, workspace=workspace)

    assert len(runner.ran("kubectl taint nodes --all")) == 2
    assert len(runner.ran("kubectl get pod -n kube-system")) == 2
    assert not runner.ran("install_kustomize|helm-debian")
    helm = runner.ran("helm upgrade --install")
    assert [c.split()[3] for c in helm] == ["yurt-app-manager", "openyurt"]
    assert runner.ran("git checkout v0.3.0 && make generate-deploy-yaml")
    assert runner.ran("FORWARD_NODE_IP=true make deploy")


def test_master_init_ignores_missing_taint(runner, host, workspace):
    runner.fail("kubectl taint", stderr="taint not found")
    runner.on("kubectl get pod -n kube-system", app_manager_listing("1/1 Running"))
    yurt_master_init(YurtSettings(), host, runner, flags=INSTALLED, poll=FAST, workspace=workspace)
    assert runner.ran("helm repo add openyurt")


def test_master_init_keeps_taints_when_not_cloud(runner, host, workspace):
    runner.on("kubectl get pod -n kube-system", app_manager_listing("1/1 Running"))
    yurt_master_init(YurtSettings(master_as_cloud=False), host, runner, flags=INSTALLED, poll=FAST, workspace=workspace)
    assert not runner.ran("kubectl taint")


def test_master_init_installs_missing_tools(runner, host, workspace):
    runner.on("kubectl get pod -n kube-system", app_manager_listing("1/1 Running"))
    yurt_master_init(
        YurtSettings(), host, runner, flags=InstalledComponentFlags(), poll=FAST, workspace=workspace
    )
    assert runner.ran("curl .*helm-debian/gpgkey")
    assert runner.ran("install_kustomize.sh")
    assert runner.ran("apt-get -qq install -y --allow-downgrades helm")


def test_master_init_times_out(runner, host, workspace):
    runner.on("kubectl get pod -n kube-system", app_manager_listing("0/1 CrashLoopBackOff"))
    with pytest.raises(StepFailed) as excinfo:
        yurt_master_init(
            YurtSettings(),
            host,
            runner,
            flags=INSTALLED,
            poll=PollSettings(interval=0, max_attempts=2),
            workspace=workspace,
        )
    assert isinstance(excinfo.value.cause, ConvergenceTimeout)
    assert not runner.ran("helm upgrade --install openyurt ")


def test_master_init_unsupported_distro(runner, host, workspace):
    centos = host.__class__("centos", host.arch, host.home_dir, host.current_dir)
    with pytest.raises(ProvisionError, match="centos"):
        yurt_master_init(YurtSettings(), centos, runner, flags=INSTALLED, poll=FAST, workspace=workspace)
    assert runner.commands == []


def test_parse_pod_listing_skips_edge_hub():
    output = "kube-system yurt-hub-edge-1\nkube-system kube-proxy-x2\ndefault web-1\n\n"
    assert parse_pod_listing(output) == [("kube-system", "kube-proxy-x2"), ("default", "web-1")]


def test_master_expand(runner, host, workspace):
    runner.on("kubectl get node edge-1", "edge-1 NotReady <none> 1m v1.28.2", "edge-1 Ready <none> 1m v1.28.2")
    runner.on("kubectl get pod -A", "kube-system yurt-hub-edge-1\nkube-system kube-proxy-x2\ndefault web-1")

    yurt_master_expand(YurtSettings(worker_node_name="edge-1"), host, runner, poll=FAST, workspace=workspace)

    assert runner.ran("kubectl label node edge-1 openyurt.io/is-edge-worker=true --overwrite")
    assert runner.ran("node.beta.openyurt.io/autonomy=true")
    assert len(runner.ran("kubectl get node edge-1")) == 2
    assert runner.ran("kubectl .* delete pod") == [
        "kubectl -n kube-system delete pod kube-proxy-x2",
        "kubectl -n default delete pod web-1",
    ]


def test_master_expand_as_cloud_node(runner, host, workspace):
    runner.on("kubectl get node edge-1", "edge-1 Ready <none> 1m v1.28.2")
    settings = YurtSettings(worker_node_name="edge-1", worker_as_edge=False)
    yurt_master_expand(settings, host, runner, poll=FAST, workspace=workspace)
    assert runner.ran("openyurt.io/is-edge-worker=false")
    assert not runner.ran("delete pod")


def test_master_expand_requires_node_name(runner, host, workspace):
    with pytest.raises(ProvisionError, match="worker node name required"):
        yurt_master_expand(YurtSettings(), host, runner, poll=FAST, workspace=workspace)
    assert runner.commands == []


def test_worker_join(runner, host, workspace):
    seen = {}

    def capture_manifest(command):
        seen["manifest"] = (workspace.last_path / "yurthub-ack.yaml").read_text()

    runner.on("yurthub-ack.yaml", capture_manifest)
    credential = ClusterJoinCredential("10.0.0.1", "6443", "abc.def")

    yurt_worker_join(credential, host, runner, workspace=workspace)

    assert "--server-addr=https://10.0.0.1:6443" in seen["manifest"]
    assert "--join-token=abc.def" in seen["manifest"]
    assert "__" not in seen["manifest"]
    assert runner.commands[0].endswith(YURTHUB_MANIFEST_PATH)
    sed = runner.ran("sed -i")[0]
    assert KUBELET_DROPIN_ORIGINAL_ARGS in sed
    assert KUBELET_DROPIN_YURT_ARGS in sed
    assert runner.commands[-1] == "sudo systemctl daemon-reload && sudo systemctl restart kubelet"


def test_worker_join_kubelet_failure_is_fatal(runner, host, workspace):
    runner.fail("sed -i")
    with pytest.raises(StepFailed) as excinfo:
        yurt_worker_join(ClusterJoinCredential("10.0.0.1", "6443", "abc.def"), host, runner, workspace=workspace)
    assert excinfo.value.step == "Configuring kubelet"
    assert not runner.ran("restart kubelet")


def test_worker_join_requires_token(runner, host, workspace):
    with pytest.raises(CredentialError, match="apiserver token required"):
        yurt_worker_join(ClusterJoinCredential("10.0.0.1", "6443", ""), host, runner, workspace=workspace)
    assert runner.commands == []


@pytest.mark.parametrize("operation", [
    lambda host, runner, workspace: yurt_master_expand(
        YurtSettings(worker_node_name="edge-1"), host, runner, poll=FAST, workspace=workspace
    ),
    lambda host, runner, workspace: yurt_worker_join(
        ClusterJoinCredential("10.0.0.1", "6443", "abc.def"), host, runner, workspace=workspace
    ),
])
def test_edge_operations_reject_unsupported_distro(runner, host, workspace, operation):
    centos = host.__class__("centos", host.arch, host.home_dir, host.current_dir)
    with pytest.raises(UnsupportedDistroError, match="centos"):
        operation(centos, runner, workspace)
    assert runner.commands == []
    assert workspace.created == 0
