"""SpendSense backend - expense tracking with an AI assistant."""
