"""Building-inspection records backend (API Gateway + Lambda)."""
