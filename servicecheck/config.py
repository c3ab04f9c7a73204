"""
Service Check Configuration

Runtime settings, sourced from the environment.
"""

import os


# =============================================================================
# Cluster Credentials
# =============================================================================

# Explicit kubeconfig path; in-cluster identity is used when unset
KUBECONFIG = os.environ.get("KUBECONFIG")


# =============================================================================
# Config Source
# =============================================================================

CONFIGMAP_NAME = os.environ.get("CONFIGMAP_NAME", "service-check-config")
CONFIGMAP_NAMESPACE = os.environ.get("CONFIGMAP_NAMESPACE", "default")
CONFIGMAP_KEY = "services.yaml"


# =============================================================================
# Scheduling
# =============================================================================

CHECK_INTERVAL_SECONDS = float(os.environ.get("CHECK_INTERVAL_SECONDS", "15"))

# "abort" stops the process on a bad config load, "skip" retries next tick
LOAD_FAILURE_POLICY = os.environ.get("LOAD_FAILURE_POLICY", "abort")


# =============================================================================
# Logging
# =============================================================================

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")


if __name__ == "__main__":
    print("Service Check Configuration")
    print("=" * 50)
    print(f"Kubeconfig: {KUBECONFIG or '(in-cluster)'}")
    print(f"ConfigMap: {CONFIGMAP_NAME}.{CONFIGMAP_NAMESPACE} [{CONFIGMAP_KEY}]")
    print(f"Interval: {CHECK_INTERVAL_SECONDS}s")
    print(f"Load failure policy: {LOAD_FAILURE_POLICY}")
