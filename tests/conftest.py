"""
CodeHeal - Test Configuration and Fixtures
"""
import os
import pytest

# Set testing environment
os.environ['ENVIRONMENT'] = 'testing'
os.environ['LOG_LEVEL'] = 'WARNING'
os.environ['LOG_FILE'] = ''
os.environ['ANTHROPIC_API_KEY'] = ''

from codeheal.core.config import Settings
from codeheal.core.logging_config import set_fingerprint, set_session_id, set_target_file
from codeheal.services.remediation.analytics import FixAnalytics, fix_analytics
from codeheal.services.remediation.engine import RemediationEngine
from codeheal.services.remediation.ledger import AttemptLedger, attempt_ledger


@pytest.fixture(autouse=True)
def reset_shared_state():
    """Process-wide ledger/analytics and logging context start empty for every test"""
    attempt_ledger.clear()
    fix_analytics.clear()
    yield
    attempt_ledger.clear()
    fix_analytics.clear()
    set_session_id('')
    set_fingerprint('')
    set_target_file('')


@pytest.fixture
def ledger() -> AttemptLedger:
    return AttemptLedger(skip_after_failures=3, failure_window_seconds=1800, ttl_seconds=86400)


@pytest.fixture
def analytics() -> FixAnalytics:
    return FixAnalytics(max_records=100)


@pytest.fixture
def test_settings() -> Settings:
    """Short budgets so timeout paths finish quickly"""
    return Settings(
        AUTOFIX_LOCAL_FIX_TIMEOUT_MS=2000,
        AUTOFIX_AI_QUICK_TIMEOUT_MS=2000,
        AUTOFIX_AI_FULL_TIMEOUT_MS=2000,
        AUTOFIX_AI_ITERATIVE_TIMEOUT_MS=4000,
        AUTOFIX_TOTAL_TIMEOUT_MS=10000,
    )


@pytest.fixture
def make_engine(ledger, analytics, test_settings):
    """Factory for engines wired to the per-test ledger and analytics"""
    def _make(ai_client=None, **kwargs) -> RemediationEngine:
        kwargs.setdefault('settings', test_settings)
        return RemediationEngine(ai_client=ai_client, ledger=ledger, analytics=analytics, **kwargs)
    return _make


@pytest.fixture
def app_missing_import() -> str:
    return (
        "export default function App() {\n"
        "  const [count, setCount] = useState(0);\n"
        "  return <button onClick={() => setCount(count + 1)}>{count}</button>;\n"
        "}\n"
    )


@pytest.fixture
def bare_specifier_tree() -> dict:
    return {
        'src/App.tsx': (
            'import Button from "src/components/Button";\n'
            '\n'
            'export default function App() {\n'
            '  return <Button />;\n'
            '}\n'
        ),
        'src/pages/Home.tsx': (
            "import Button from 'src/components/Button';\n"
            "import { api } from '../lib/api';\n"
            "\n"
            "export function Home() {\n"
            "  return <Button />;\n"
            "}\n"
        ),
        'src/components/Button.tsx': (
            "export default function Button() {\n"
            "  return <button>Click</button>;\n"
            "}\n"
        ),
    }


@pytest.fixture
def bare_specifier_message() -> str:
    return (
        'The specifier "src/components/Button" was a bare specifier, '
        'but was not remapped to anything.'
    )
