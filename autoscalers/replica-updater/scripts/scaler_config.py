"""Configuration for the replica updater.

Values come from a YAML file (REPLICA_UPDATER_CONFIG, default /config.yaml)
with BACKEND and NAMESPACE environment overrides.
"""

import os
from dataclasses import dataclass

import docker
import yaml
from kubernetes import client, config as kube_config
from kubernetes.config.config_exception import ConfigException

from adapter_logger import AdapterLogger
from kube_query import KubernetesServiceQuery
from scale_bounds import DEFAULT_MAX_REPLICAS, DEFAULT_MIN_REPLICAS, BoundsResolver
from service_query import ServiceQuery
from swarm_query import SwarmServiceQuery


CONFIG_PATH_ENV = "REPLICA_UPDATER_CONFIG"
DEFAULT_CONFIG_PATH = "/config.yaml"

BACKEND_SWARM = "swarm"
BACKEND_KUBERNETES = "kubernetes"
BACKENDS = (BACKEND_SWARM, BACKEND_KUBERNETES)


logger = AdapterLogger("scaler_config").logger


@dataclass
class ScalerConfig:
    backend: str = BACKEND_SWARM
    namespace: str = "default"
    docker_host: str | None = None
    default_min_replicas: int = DEFAULT_MIN_REPLICAS
    default_max_replicas: int = DEFAULT_MAX_REPLICAS
    host: str = "0.0.0.0"
    port: int = 8080

    @staticmethod
    def from_dict(raw: dict) -> "ScalerConfig":
        defaults = ScalerConfig()
        return ScalerConfig(
            backend=str(raw.get("backend", defaults.backend)),
            namespace=str(raw.get("namespace", defaults.namespace)),
            docker_host=raw.get("dockerHost", defaults.docker_host),
            default_min_replicas=int(raw.get("defaultMinReplicas", defaults.default_min_replicas)),
            default_max_replicas=int(raw.get("defaultMaxReplicas", defaults.default_max_replicas)),
            host=str(raw.get("host", defaults.host)),
            port=int(raw.get("port", defaults.port)),
        )

    def resolver(self) -> BoundsResolver:
        return BoundsResolver(
            default_min=self.default_min_replicas,
            default_max=self.default_max_replicas,
        )


def read_config_file(configfile: str) -> dict:
    if not os.path.exists(configfile):
        logger.info(f"No config file at {configfile}, using defaults")
        return {}
    with open(configfile) as file:
        try:
            raw = yaml.safe_load(file)
        except yaml.YAMLError as e:
            logger.error(f"failed to parse config file: {e}")
            return {}
    if raw is None:
        logger.error("config file was empty")
        return {}
    if not isinstance(raw, dict):
        logger.error(f"config file {configfile} must hold a mapping")
        return {}
    return raw


def load_config(configfile: str | None = None) -> ScalerConfig:
    if configfile is None:
        configfile = os.getenv(CONFIG_PATH_ENV, DEFAULT_CONFIG_PATH)

    cfg = ScalerConfig.from_dict(read_config_file(configfile))

    backend = os.getenv("BACKEND")
    if backend:
        cfg.backend = backend
    namespace = os.getenv("NAMESPACE")
    if namespace:
        cfg.namespace = namespace
    return cfg


def load_kubernetes_apps() -> client.AppsV1Api:
    try:
        kube_config.load_incluster_config()
    except ConfigException:
        logger.info("Not running in a cluster, loading kubeconfig")
        kube_config.load_kube_config()
    return client.AppsV1Api()


def build_service_query(cfg: ScalerConfig) -> ServiceQuery:
    """Construct the ServiceQuery for the configured backend."""
    if cfg.backend == BACKEND_SWARM:
        if cfg.docker_host:
            api = docker.APIClient(base_url=cfg.docker_host)
        else:
            api = docker.from_env().api
        return SwarmServiceQuery(api, resolver=cfg.resolver())

    if cfg.backend == BACKEND_KUBERNETES:
        return KubernetesServiceQuery(
            load_kubernetes_apps(), namespace=cfg.namespace, resolver=cfg.resolver()
        )

    raise ValueError(f"Unknown backend '{cfg.backend}', expected one of {', '.join(BACKENDS)}")
