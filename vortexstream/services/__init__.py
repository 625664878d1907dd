"""Write-path operations: validation, ownership checks and store updates."""
