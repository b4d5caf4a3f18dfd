"""
setup.py - Package Installation Configuration
==============================================
"""

from setuptools import setup
from pathlib import Path

# Read README for long description
readme_file = Path(__file__).parent / "README.md"
if readme_file.exists():
    long_description = readme_file.read_text()
else:
    long_description = "Per-function time report for WebAssembly profiling runs"

# Read requirements
requirements_file = Path(__file__).parent / "requirements.txt"
if requirements_file.exists():
    with open(requirements_file) as f:
        requirements = [line.strip() for line in f
                       if line.strip() and not line.startswith('#')]
else:
    requirements = [
        'pandas>=1.3.0',
        'jinja2>=3.0.0',
    ]

setup(
    name='wasm-profiler',
    version='0.1.0',
    description='Aggregate WebAssembly profiling samples and report time per function',
    long_description=long_description,
    long_description_content_type='text/markdown',
    py_modules=[
        'aggregation',
        'config',
        'main',
        'models',
        'profiler',
        'reports',
        'utils',
        'wasm_module',
        'wasm_names',
    ],
    classifiers=[
        'Development Status :: 4 - Beta',
        'Intended Audience :: Developers',
        'Topic :: Software Development :: Debuggers',
        'License :: OSI Approved :: MIT License',
        'Programming Language :: Python :: 3',
        'Operating System :: OS Independent',
    ],
    python_requires='>=3.8',
    install_requires=requirements,
    extras_require={
        'dev': [
            'pytest>=6.2.0',
            'pyyaml>=5.4',
        ],
        'yaml': [
            'pyyaml>=5.4',
        ],
    },
    entry_points={
        'console_scripts': [
            'wasm-profiler=main:main',
        ],
    },
    zip_safe=False,
)
