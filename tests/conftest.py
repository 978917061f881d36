# FILE: tests/conftest.py

import pytest
import sys
import os
import logging
from pathlib import Path

# Add src directory (and the repo root, for main.py) to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from mapping_config import MappingConfig, load_mapping_config

# ==============================================================================
# PYTEST CONFIGURATION & HOOKS
# ==============================================================================

def pytest_configure(config):
    """Configure pytest settings and markers."""
    config.addinivalue_line("markers", "unit: Pure unit tests with no external dependencies.")
    config.addinivalue_line("markers", "integration: Tests touching the filesystem or the CLI.")

@pytest.fixture(scope="session", autouse=True)
def setup_test_environment(pytestconfig):
    """Set up test environment with logging configuration."""
    log_level = pytestconfig.getoption("log_cli_level") or "INFO"
    logging.basicConfig(
        level=log_level.upper(),
        format="[%(asctime)s] [%(levelname)s] [%(name)s:%(lineno)d] - %(message)s",
        stream=sys.stdout,
        force=True,
    )
    logging.info(f"Test logging configured with level: {log_level.upper()}")
    yield

# ==============================================================================
# UNIT TEST FIXTURES
# ==============================================================================

@pytest.fixture(scope="session")
def mappings_dir() -> Path:
    return Path(__file__).parent.parent / "src" / "mappings"

@pytest.fixture(scope="session")
def enrollment_config(mappings_dir: Path) -> MappingConfig:
    """The sample 834 mapping config shipped with the project."""
    return load_mapping_config(mappings_dir / "834.benefit_enrollment.json")

@pytest.fixture(scope="session")
def scenario_edi_string() -> str:
    """Minimal two-member document used for the basic loop scenarios."""
    return "ST*834*0001\nINS*Y*18\nREF*0F*ABC\nINS*Y*19\nREF*0F*XYZ"

@pytest.fixture(scope="session")
def valid_834_edi_string() -> str:
    """Provides a shared 834 enrollment document with two members."""
    return """
ISA*00*          *00*          *ZZ*SENDERID       *ZZ*RECEIVERID     *240715*1200*^*00501*000000001*0*P*>~
GS*BE*SENDER*RECEIVER*20240715*1200*1*X*005010X220A1~
ST*834*0001*005010X220A1~
BGN*00*12456*20240715*1200****2~
N1*P5*ACME CORP*FI*123456789~
N1*IN*BLUE PAYER*FI*987654321~
INS*Y*18*021*28*A***FT~
REF*0F*SUB001~
NM1*IL*1*DOE*JOHN****34*111223333~
DMG*D8*19800101*M~
INS*N*19*021*28*A***FT~
REF*0F*SUB001~
NM1*IL*1*DOE*JANE****34*444556666~
DMG*D8*20100505*F~
SE*14*0001~
GE*1*1~
IEA*1*000000001~
""".strip()
