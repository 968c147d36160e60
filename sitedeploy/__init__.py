"""
Netlify site deployer
Creates Netlify sites, deploys content to them and manages their custom domains
"""

__version__ = "1.0.0"
