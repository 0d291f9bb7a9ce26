"""Model fitting on the assembled feature table."""

from lstpipe.modeling.regression import ModelReport, fit_models, save_reports, select_features

__all__ = ['ModelReport', 'fit_models', 'save_reports', 'select_features']
