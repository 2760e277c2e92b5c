# trend_ml/__init__.py

"""
Core ML engine for the weekly trend classifier.

This package handles:
- repairing and ordering daily OHLCV series
- feature engineering (volume momentum, EMA convergence, stochastic oscillator)
- label creation for the one-week horizon (Bullish / Bearish)
- trimming, stratified train/test split and train-only feature scaling
- model training (random forest) and evaluation (confusion matrix, ROC/AUC)
"""
