from setuptools import setup, find_packages

setup(
    name='pyffs',
    version='0.1',
    packages=find_packages(exclude=['tests', 'tests.*']),
    description='Forward flux sampling of rare transitions in stochastic simulations.',
    long_description=open('README.md').read(),
    long_description_content_type='text/markdown',
    license='MIT',
    python_requires='>=3.9',
    install_requires=[
    'numpy',
    'scipy',
    'matplotlib',
    'pandas',
    'tqdm',
    'pyarrow'
    ],
    extras_require={
        'test': ['pytest']
    },
    entry_points={
        'console_scripts': ['pyffs=pyffs.cli:main']
    },
)
