"""
Módulo de Dashboard - InvoGen

Métricas de ingresos de solo lectura calculadas a partir de las facturas de la empresa.
"""
