# Namespace for feature labels and for extended resources given by bare name
LABEL_NS = "feature.node.kubernetes.io/"

# Namespace for all NFD-related annotations
ANNOTATION_NS = "nfd.node.kubernetes.io/"

# Bookkeeping annotation keys (stored under ANNOTATION_NS)
MASTER_VERSION_ANNOTATION = "master.version"
WORKER_VERSION_ANNOTATION = "worker.version"
FEATURE_LABELS_ANNOTATION = "feature-labels"
EXTENDED_RESOURCES_ANNOTATION = "extended-resources"

# Labels from earlier releases, stripped on every reconciliation pass
LEGACY_LABEL_PREFIXES = (
    "node.alpha.kubernetes-incubator.io/nfd",
    "node.alpha.kubernetes-incubator.io/node-feature-discovery",
)

# NodeResourceTopology custom resource
TOPOLOGY_GROUP = "topology.node.k8s.io"
TOPOLOGY_VERSION = "v1alpha1"
TOPOLOGY_PLURAL = "noderesourcetopologies"
TOPOLOGY_KIND = "NodeResourceTopology"
