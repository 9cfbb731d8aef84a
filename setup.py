from setuptools import setup


setup(
    name='withrottle_client',
    version='1.0.0',
    packages=['withrottle'],
    description='Client for the WiThrottle protocol to control model railway command stations',
    license='MIT',
    include_package_data=False,
    install_requires=['numpy', 'pyserial'],
    extras_require={'test': ['pytest']},
)
