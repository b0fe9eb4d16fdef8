from setuptools import setup

tests_require = ['pytest']

long_description = """
Sigwait lets a program wait for OS signals or cancellation, and run work
in a context that is cancelled when a signal arrives.
"""


setup(name="sigwait",
      description="Signal-aware cancellable waiting for graceful shutdown",
      long_description=long_description,
      license="BSD",
      version="1.0",
      packages=['sigwait'],
      extras_require={
          'test': tests_require,
      },
      python_requires='>= 3.8',
      classifiers=[
          'Programming Language :: Python :: 3',
      ])
