"""Default capability graph and keyword inference table.

Both tables are plain data. ``CapabilityConfig`` copies them as defaults so a
deployment can swap in its own graph without touching the matcher.
"""

from typing import Dict, List

# capability -> capabilities that count as a partial match for it
RELATED_CAPABILITIES: Dict[str, List[str]] = {
    "security-analysis": ["vulnerability-detection", "secret-scanning", "code-security"],
    "vulnerability-detection": ["security-analysis", "secret-scanning"],
    "testing": ["test-generation", "quality-assurance"],
    "test-generation": ["testing", "quality-assurance"],
    "api-integration": ["api-testing", "endpoint-analysis"],
    "ui-interaction": ["accessibility", "responsive-design"],
    "optimization": ["performance-analysis", "code-optimization"],
    "code-style": ["linting", "formatting", "refactoring"],
}

# keyword found in an issue's type or title -> capability it implies.
# Insertion order is the match priority.
CAPABILITY_KEYWORDS: Dict[str, str] = {
    "api": "api-integration",
    "ui": "ui-interaction",
    "performance": "optimization",
    "security": "security-analysis",
    "test": "testing",
    "style": "code-style",
}

DEFAULT_CAPABILITY = "general"

# Default capability profiles per agent type, used for bulk registration
DEFAULT_AGENT_PROFILES: Dict[str, Dict] = {
    "security": {
        "capabilities": ["security-analysis", "vulnerability-detection", "secret-scanning"],
        "description": "Finds injection flaws, leaked secrets and unsafe dependencies.",
    },
    "testing": {
        "capabilities": ["testing", "test-generation", "quality-assurance"],
        "description": "Writes and repairs tests, checks coverage gaps.",
    },
    "performance": {
        "capabilities": ["optimization", "performance-analysis"],
        "description": "Profiles hot paths and removes needless work.",
    },
    "api": {
        "capabilities": ["api-integration", "api-testing", "endpoint-analysis"],
        "description": "Checks endpoint contracts and client integrations.",
    },
    "ui": {
        "capabilities": ["ui-interaction", "accessibility", "responsive-design"],
        "description": "Exercises user flows and accessibility rules.",
    },
    "style": {
        "capabilities": ["code-style", "linting", "formatting"],
        "description": "Enforces formatting and lint rules.",
    },
    "custom": {
        "capabilities": ["general"],
        "description": "Custom agent with general capabilities.",
    },
}
