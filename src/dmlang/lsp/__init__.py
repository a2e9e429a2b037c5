"""Language server for DML documents."""
