from setuptools import setup

setup(
    name='procthread',
    version='1.0.0',
    description='Run tasks in child processes and control them like threads',
    author='isantolin',
    author_email='',
    packages=['procthread', 'procthread.config', 'procthread.state'],
    python_requires='>=3.11',
    install_requires=[
        'msgspec',
        'psutil',
        'transitions',
        'marshmallow',
        'cryptography',
        'tenacity',
    ],
    extras_require={
        'test': [
            'pytest',
        ],
    },
    entry_points={
        'console_scripts': [
            'procthread-runner=procthread.runner:main',
        ],
    },
    classifiers=[
        'Programming Language :: Python :: 3',
        'Operating System :: POSIX :: Linux',
        'Operating System :: MacOS',
    ],
)
