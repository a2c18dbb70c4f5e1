"""
Provisioning building blocks and the role pipelines built from them.
"""
from .credentials import ClusterJoinCredential, read_credential, resolve_credential, write_credential
from .kube import kube_master_init, kube_worker_join
from .pipeline import Pipeline, Step, StepContext
from .shell import CommandRunner, ShellInvocation, ShellResult
from .system import system_init
from .workspace import ScopedWorkspace
from .yurt import yurt_master_expand, yurt_master_init, yurt_worker_join

__all__ = [
    'ClusterJoinCredential',
    'read_credential',
    'resolve_credential',
    'write_credential',
    'kube_master_init',
    'kube_worker_join',
    'Pipeline',
    'Step',
    'StepContext',
    'CommandRunner',
    'ShellInvocation',
    'ShellResult',
    'system_init',
    'ScopedWorkspace',
    'yurt_master_expand',
    'yurt_master_init',
    'yurt_worker_join',
]
