"""Aid CRM back office: authorization, validation and audit core."""
