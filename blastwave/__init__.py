"""Blast-wave model core: geometry, density fields, emission, flow, thermal momenta and v2{2} cumulants."""

__version__ = "0.1.0"