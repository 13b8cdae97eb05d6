import logging
import math
import sys
import threading

import matplotlib

matplotlib.use("Agg")  # use non-interactive backend for testing

import pytest

from filmstack.database import OpticalDatabase
from filmstack.optical_data import OpticalDataStore
from filmstack.oracle import TransferMatrixOracle, WavelengthResponseOracle
from filmstack.spectrum import SpectrumEngine

# index matching a 1.5 substrate to air: a quarter wave of it is a perfect AR
IDEAL_AR_INDEX = math.sqrt(1.5)


def pytest_configure(config):
    """Configure logging for test runs."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stderr,
    )


def constant(n, k=0.0):
    return [(300.0, n, k), (900.0, n, k)]


class ConstantOracle(WavelengthResponseOracle):
    """Reports the same reflection at every wavelength, lossless."""

    def __init__(self, reflection=0.5):
        self.reflection = reflection
        self.calls = 0
        self._lock = threading.Lock()

    def respond(self, stack, wavelength):
        with self._lock:
            self.calls += 1
        return 1.0 - self.reflection, self.reflection


@pytest.fixture
def db_path(tmp_path):
    """Seeded SQLite database file with materials, substrates and structures."""
    path = tmp_path / "coatings.db"
    with OpticalDatabase(path) as db:
        db.add_material("MgF2", constant(1.38))
        db.add_material("TiO2", constant(2.4))
        db.add_material("IdealAR", constant(IDEAL_AR_INDEX))
        db.add_material("Lossy", constant(2.0, 0.5))
        db.add_material(
            "Dispersive", [(400.0, 1.0, 0.0), (500.0, 1.5, 0.1), (600.0, 2.0, 0.2)]
        )
        db.add_substrate("BK7", constant(1.52))
        db.add_substrate("Glass150", constant(1.5))

        db.add_structure("Bare", "Glass150", [])
        db.add_structure("AR-MgF2", "BK7", [("MgF2", 550.0 / (4 * 1.38))])
        db.add_structure(
            "HL-Mirror",
            "BK7",
            [("TiO2", 550.0 / (4 * 2.4)), ("MgF2", 550.0 / (4 * 1.38))],
        )
        db.add_structure(
            "IdealAR", "Glass150", [("IdealAR", 550.0 / (4 * IDEAL_AR_INDEX))]
        )
    return path


@pytest.fixture
def database(db_path):
    db = OpticalDatabase(db_path, create=False)
    yield db
    db.close()


@pytest.fixture
def store(database):
    return OpticalDataStore(database)


@pytest.fixture
def oracle(store):
    return TransferMatrixOracle(store)


@pytest.fixture
def engine(oracle):
    with SpectrumEngine(oracle, max_workers=4) as engine:
        yield engine


@pytest.fixture
def constant_engine():
    with SpectrumEngine(ConstantOracle(0.5), max_workers=4) as engine:
        yield engine
