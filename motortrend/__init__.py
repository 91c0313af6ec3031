"""
Motor Trend Fuel Economy Analysis
=================================

Does a manual transmission improve fuel economy? An inferential analysis
of the 1973-74 Motor Trend road tests.

Modules:
    - data_loader: Configuration, CSV ingestion and schema checks
    - fetch: Download and parsing of the Auto MPG validation table
    - preprocessing: Tidying, derived features and design matrices
    - eda: Exploratory Data Analysis
    - selection: Exhaustive best-subset selection
    - model: OLS candidate models
    - diagnostics: Influence measures and residual normality
    - evaluation: Cross-dataset validation
    - report: Transmission hypothesis test and Markdown report
"""

__version__ = "1.0.0"
__author__ = "Fuel Economy Analytics Team"
