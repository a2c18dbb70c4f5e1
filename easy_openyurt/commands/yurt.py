from typing import Optional

import typer

from ..config import Config, PollSettings, YurtSettings
from ..modules.credentials import resolve_credential
from ..modules.environment import detect_host
from ..modules.yurt import yurt_master_expand, yurt_master_init, yurt_worker_join
from . import abort_on_failure

app = typer.Typer(help="Deploy OpenYurt and enroll edge nodes")
master_app = typer.Typer(help="Master node operations")
worker_app = typer.Typer(help="Worker node operations")
app.add_typer(master_app, name="master")
app.add_typer(worker_app, name="worker")


def _poll_settings(interval: float, max_attempts: int) -> PollSettings:
    return PollSettings(interval=interval, max_attempts=max_attempts or None)


@master_app.command("init")
def master_init(
    master_as_cloud: bool = typer.Option(True, help="Treat master as cloud node"),
    raven_version: str = typer.Option(Config.RAVEN_VERSION, help="Tag of the raven components"),
    poll_interval: float = typer.Option(Config.POLL_INTERVAL, help="Seconds between readiness checks"),
    poll_max_attempts: int = typer.Option(Config.POLL_MAX_ATTEMPTS or 0, help="Readiness checks before giving up (0 waits forever)"),
):
    """Deploy the OpenYurt control plane on the master node."""
    settings = YurtSettings(master_as_cloud=master_as_cloud, raven_version=raven_version)
    with abort_on_failure("init OpenYurt master node"):
        yurt_master_init(settings, detect_host(), poll=_poll_settings(poll_interval, poll_max_attempts))


@master_app.command("expand")
def master_expand(
    worker_node_name: str = typer.Option(..., help="Worker node name (**REQUIRED**)"),
    worker_as_edge: bool = typer.Option(True, help="Treat worker as edge node"),
    poll_interval: float = typer.Option(Config.POLL_INTERVAL, help="Seconds between readiness checks"),
    poll_max_attempts: int = typer.Option(Config.POLL_MAX_ATTEMPTS or 0, help="Readiness checks before giving up (0 waits forever)"),
):
    """Enroll a joined worker node into OpenYurt."""
    settings = YurtSettings(worker_node_name=worker_node_name, worker_as_edge=worker_as_edge)
    with abort_on_failure(f"expand OpenYurt to node [{worker_node_name}]"):
        yurt_master_expand(settings, detect_host(), poll=_poll_settings(poll_interval, poll_max_attempts))


@worker_app.command("join")
def worker_join(
    apiserver_advertise_address: Optional[str] = typer.Option(None, help="Kubernetes API server advertise address (**REQUIRED**)"),
    apiserver_port: Optional[str] = typer.Option(None, help=f"Kubernetes API server port [default: {Config.APISERVER_PORT}]"),
    apiserver_token: Optional[str] = typer.Option(None, help="Kubernetes API server token (**REQUIRED**)"),
    credential_file: Optional[str] = typer.Option(None, help="Read missing values from a masterKey.yaml written by the master"),
):
    """Join this worker node to the OpenYurt cluster."""
    with abort_on_failure("join OpenYurt cluster"):
        credential = resolve_credential(
            advertise_address=apiserver_advertise_address,
            port=apiserver_port,
            token=apiserver_token,
            credential_file=credential_file,
            require_hash=False,
        )
        yurt_worker_join(credential, detect_host())
