"""Operations and algorithms built on top of the graph core."""

from .effects import (
    DownstreamRequests,
    all_downstream_effects_of,
    all_downstream_requests_nested,
    direct_downstream_effects_of,
)
from .filters import resources_matching_filter, resources_matching_filters
from .queries import (
    BlinkIdIndex,
    RequestInfo,
    all_remote_frame_ids,
    dom_root_for_edge,
    dom_root_for_html_node,
    html_element_modifications,
    local_context_root_for_id,
    request_info,
    resource_request_types,
    resources_from_script,
    root_url,
    scripts_that_caused_resource,
)

__all__ = [
    "BlinkIdIndex",
    "DownstreamRequests",
    "RequestInfo",
    "all_downstream_effects_of",
    "all_downstream_requests_nested",
    "all_remote_frame_ids",
    "direct_downstream_effects_of",
    "dom_root_for_edge",
    "dom_root_for_html_node",
    "html_element_modifications",
    "local_context_root_for_id",
    "request_info",
    "resource_request_types",
    "resources_from_script",
    "resources_matching_filter",
    "resources_matching_filters",
    "root_url",
    "scripts_that_caused_resource",
]
