"""HTTP value types: responses, query strings and form bodies."""
