"""cluster-config - effective configuration resolution and stale-config detection.

Quick Start:
    from cluster_config.service import ConfigService
    from cluster_config.settings import ClusterConfigSettings
    from cluster_config.types import ComponentKey

    service = ConfigService(
        cluster_state,
        stack_metadata,
        component_state,
        policy=ClusterConfigSettings().cache_policy(),
    )
    tags = service.desired_tags("c1", "host1")
    stale = service.is_stale(ComponentKey("c1", "host1", "HDFS", "DATANODE"))
"""

__version__ = "0.1.0"
