"""Component names."""

NETWORK_PLUGIN_SYNCER_COMPONENT = "submariner-networkplugin-syncer"
ROUTE_AGENT_COMPONENT = "submariner-routeagent"
GATEWAY_COMPONENT = "submariner-gateway"
GLOBALNET_COMPONENT = "submariner-globalnet"
SERVICE_DISCOVERY_COMPONENT = "submariner-lighthouse-agent"
LIGHTHOUSE_COREDNS_COMPONENT = "submariner-lighthouse-coredns"
OPERATOR_COMPONENT = "submariner-operator"
METRICS_PROXY_COMPONENT = "submariner-metrics-proxy"
NETTEST_COMPONENT = "submariner-nettest"
SUBCTL_COMPONENT = "submariner-subctl"