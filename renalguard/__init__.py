"""
RenalGuard — clinical risk classification and treatment decision engine
for chronic kidney disease.
"""
__version__ = "1.0.0"
