"""Manifests written onto edge worker nodes."""
from typing import Dict

MASTER_ADDRESS_PLACEHOLDER = "__kubernetes_master_address__"
BOOTSTRAP_TOKEN_PLACEHOLDER = "__bootstrap_token__"

YURTHUB_MANIFEST_PATH = "/etc/kubernetes/manifests/yurthub-ack.yaml"
OPENYURT_KUBELET_CONF_PATH = "/var/lib/openyurt/kubelet.conf"
KUBEADM_KUBELET_DROPIN_PATH = "/etc/systemd/system/kubelet.service.d/10-kubeadm.conf"

YURTHUB_TEMPLATE = """apiVersion: v1
kind: Pod
metadata:
  labels:
    k8s-app: yurt-hub
  name: yurt-hub
  namespace: kube-system
spec:
  volumes:
  - name: hub-dir
    hostPath:
      path: /var/lib/yurthub
      type: DirectoryOrCreate
  - name: kubernetes
    hostPath:
      path: /etc/kubernetes
      type: Directory
  - name: pem-dir
    hostPath:
      path: /var/lib/kubelet/pki
      type: Directory
  containers:
  - name: yurt-hub
    image: openyurt/yurthub:latest
    imagePullPolicy: IfNotPresent
    volumeMounts:
    - name: hub-dir
      mountPath: /var/lib/yurthub
    - name: kubernetes
      mountPath: /etc/kubernetes
    - name: pem-dir
      mountPath: /var/lib/kubelet/pki
    command:
    - yurthub
    - --v=2
    - --server-addr=https://__kubernetes_master_address__
    - --node-name=$(NODE_NAME)
    - --join-token=__bootstrap_token__
    livenessProbe:
      httpGet:
        host: 127.0.0.1
        path: /v1/healthz
        port: 10267
      initialDelaySeconds: 300
      periodSeconds: 5
      failureThreshold: 3
    resources:
      requests:
        cpu: 150m
        memory: 150Mi
      limits:
        memory: 300Mi
    securityContext:
      capabilities:
        add: ["NET_ADMIN", "NET_RAW"]
    env:
    - name: NODE_NAME
      valueFrom:
        fieldRef:
          fieldPath: spec.nodeName
  hostNetwork: true
  priorityClassName: system-node-critical
  priority: 2000001000
"""

# kubelet talks to the local yurthub proxy instead of the API server
KUBELET_KUBECONFIG_TEMPLATE = """apiVersion: v1
clusters:
- cluster:
    server: http://127.0.0.1:10261
  name: default-cluster
contexts:
- context:
    cluster: default-cluster
    namespace: default
    user: default-auth
  name: default-context
current-context: default-context
kind: Config
preferences: {}
"""

KUBELET_DROPIN_ORIGINAL_ARGS = (
    "KUBELET_KUBECONFIG_ARGS=--bootstrap-kubeconfig=/etc/kubernetes/bootstrap-kubelet.conf "
    "--kubeconfig=/etc/kubernetes/kubelet.conf"
)
KUBELET_DROPIN_YURT_ARGS = f"KUBELET_KUBECONFIG_ARGS=--kubeconfig={OPENYURT_KUBELET_CONF_PATH}"


def render_template(template: str, replacements: Dict[str, str]) -> str:
    """Substitute every placeholder; a placeholder left behind is an error."""
    rendered = template
    for placeholder, value in replacements.items():
        rendered = rendered.replace(placeholder, value)
    leftover = [p for p in (MASTER_ADDRESS_PLACEHOLDER, BOOTSTRAP_TOKEN_PLACEHOLDER) if p in rendered]
    if leftover:
        raise ValueError(f"Unrendered placeholders: {', '.join(leftover)}")
    return rendered


def render_yurthub_manifest(endpoint: str, token: str) -> str:
    return render_template(
        YURTHUB_TEMPLATE,
        {
            MASTER_ADDRESS_PLACEHOLDER: endpoint,
            BOOTSTRAP_TOKEN_PLACEHOLDER: token,
        },
    )
