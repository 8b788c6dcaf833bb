"""Names shared between the pods this plugin creates and the code that finds them again."""

PLUGIN_ID = "cd.go.contrib.elastic-agent.kubernetes"

POD_NAME_PREFIX = "k8s-ea-"
DEFAULT_NAMESPACE = "default"

# Labels stamped on every elastic agent pod
KIND_LABEL_KEY = "kind"
KIND_LABEL_VALUE = "kubernetes-elastic-agent"
CREATED_BY_LABEL_KEY = "Elastic-Agent-Created-By"
ENVIRONMENT_LABEL_KEY = "Elastic-Agent-Environment-Name"
CREATED_AT_LABEL_KEY = "Elastic-Agent-Created-At"

# Environment variables handed to the agent container
SERVER_URL_ENV = "GO_EA_SERVER_URL"
AUTO_REGISTER_KEY_ENV = "GO_EA_AUTO_REGISTER_KEY"
AUTO_REGISTER_ENVIRONMENT_ENV = "GO_EA_AUTO_REGISTER_ENVIRONMENT"
AUTO_REGISTER_AGENT_ID_ENV = "GO_EA_AUTO_REGISTER_ELASTIC_AGENT_ID"
AUTO_REGISTER_PLUGIN_ID_ENV = "GO_EA_AUTO_REGISTER_ELASTIC_PLUGIN_ID"
