from importlib import import_module


def load_backend(name: str = "auto"):
    """Return kernel functions (dirichlet_expectation, column_softmax, compute_gamma).

    Parameters
    ----------
    name : str
        "auto"   – choose highest-performance backend available in the
                    order numba → numpy.
        "numba"  – force CPU/Numba backend.
        "numpy"  – reference implementation.
    """
    if name not in ("auto", "numba", "numpy"):
        raise ValueError(f"Unknown backend '{name}'. Choose between auto, numba and numpy.")

    order = ["numba", "numpy"] if name == "auto" else [name]

    last_error = None
    for backend in order:
        try:
            mod = import_module(f"kernels_{backend}")
            return (mod.dirichlet_expectation, mod.column_softmax,
                    mod.compute_gamma, backend)
        except ModuleNotFoundError as e:
            last_error = e
        except ImportError as e:  # e.g. numba on Windows
            last_error = e
    raise ImportError(
        f"Could not load any backend. Last error: {last_error}")
