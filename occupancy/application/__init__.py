"""
Application module - Use cases / Application Layer

Orchestrates the domain: data repair, analytics and insights, training and
prediction. Depends only on the domain layer's interfaces.
"""
