"""Automatic differentiation over NumPy arrays.

Forward mode uses dual numbers. Reverse mode builds expression nodes for unary
functions, products, assignments, transpose, determinants, and the Cauchy,
uniform and Wishart log-densities.
"""

__version__ = "0.1.0"