from setuptools import setup

with open("README.md", "r") as fh:
    long_description = fh.read()

setup(
    name="ldaem",
    version="0.1.0",
    description="Supervised and unsupervised Latent Dirichlet Allocation with variational EM.",
    py_modules=["lda", "expectation_maximization", "e_steps", "m_steps", "likelihood",
                "parameters", "corpus", "progress_events", "helpers", "backend", "logger",
                "kernels_numpy", "kernels_numba", "utils", "run"],
    package_dir={"": "src"},
    author="Eudald Correig",
    author_email="eudald.correig@urv.cat",
    keywords=["bayesian analysis", "topic models", "variational inference", "python"],
    python_requires='>=3.8',
    classifiers=[
        "Development Status :: 4 - Beta",
        "Programming Language :: Python :: 3",
        "Intended Audience :: Science/Research",
        "Operating System :: OS Independent",
        "Topic :: Scientific/Engineering :: Artificial Intelligence",
    ],
    license="BSD-3-Clause License",
    long_description=long_description,
    long_description_content_type="text/markdown",
    install_requires=[
        "numpy",
        "scipy",
        "pandas",
        "tqdm",
        "ruamel.yaml",
    ],
    extras_require={
        "dev": [
            "pytest >= 7.0",
            'pytest-cov',
            'coveralls',
        ],
        "numba": ["numba"],
    },
)
